import pytest

from smb_cashflow import __version__
from smb_cashflow.cli import main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "smb_cashflow_config.toml"
    path.write_text(
        """
[ledger]
owner = "shop-1"

[database]
path = "ledger.sqlite"

[display]
mode = "table"
output_dir = "out"
""",
        encoding="utf-8",
    )
    return str(path)


def run(config_path, *args):
    main(["--config", config_path, *args])


def test_version(capsys):
    main(["--version"])

    assert __version__ in capsys.readouterr().out


def test_record_settle_and_dashboard(config_path, capsys):
    run(
        config_path,
        "entries",
        "add",
        "--type",
        "Credit",
        "--category",
        "Sales",
        "--payment-method",
        "Bank",
        "--amount",
        "500",
        "--date",
        "2024-03-01",
    )
    out = capsys.readouterr().out
    assert "Entry #1 recorded" in out
    assert "CREDIT" in out

    run(config_path, "settle", "1", "--amount", "500", "--date", "2024-03-15")
    out = capsys.readouterr().out
    assert "settled on 2024-03-15" in out
    assert "CASH IN" in out

    run(config_path, "--period", "all-time", "dashboard")
    out = capsys.readouterr().out
    assert "=== Cash position (INR) ===" in out
    assert "Net profit" in out
    assert "500.0" in out

    run(
        config_path,
        "--from-date",
        "2024-03-01",
        "--to-date",
        "2024-03-31",
        "entries",
        "list",
    )
    out = capsys.readouterr().out
    assert "Total entries: 2" in out


def test_settling_twice_exits_with_error(config_path, capsys):
    run(
        config_path,
        "entries",
        "add",
        "--type",
        "Advance",
        "--category",
        "Assets",
        "--amount",
        "1200",
        "--date",
        "2024-03-01",
    )
    run(config_path, "settle", "1", "--date", "2024-03-02")
    assert "No cash entry was created" in capsys.readouterr().out

    with pytest.raises(SystemExit) as excinfo:
        run(config_path, "settle", "1", "--date", "2024-03-03")

    assert excinfo.value.code == 1
    assert "already settled" in capsys.readouterr().err


def test_csv_export(config_path, tmp_path, capsys):
    run(config_path, "--display-mode", "csv", "trend", "--months", "3")

    out = capsys.readouterr().out
    assert "Wrote" in out
    assert len(list((tmp_path / "out").glob("trend_*.csv"))) == 1


def test_inverted_custom_period_is_rejected(config_path, capsys):
    with pytest.raises(SystemExit):
        run(
            config_path,
            "--from-date",
            "2024-03-31",
            "--to-date",
            "2024-03-01",
            "dashboard",
        )

    assert "cannot be before" in capsys.readouterr().err


def test_help_describes_single_bound_fallback(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])

    assert excinfo.value.code == 0
    help_text = " ".join(capsys.readouterr().out.split())
    assert "Given alone, the period falls back to all-time." in help_text
    assert "Requires --to-date" not in help_text
