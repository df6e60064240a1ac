import pytest

from smb_cashflow.config import load_app_config


def write_config(tmp_path, content: str):
    path = tmp_path / "smb_cashflow_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_minimal_config_uses_defaults(tmp_path):
    path = write_config(tmp_path, "")

    cfg = load_app_config(str(path))

    assert cfg.owner_id is None
    assert cfg.currency == "INR"
    assert cfg.database.engine == "sqlite"
    assert cfg.database.path == (tmp_path / "data/db/smb_cashflow.sqlite").resolve()
    assert cfg.dashboard.default_period == "this-month"
    assert cfg.dashboard.trend_months == 6
    assert cfg.display_mode == "table"
    assert cfg.amount_decimals == 2
    assert cfg.log_level == "WARNING"


def test_full_config_is_parsed_relative_to_file(tmp_path):
    path = write_config(
        tmp_path,
        """
[ledger]
owner = "corner-shop"

[accounting]
currency = "EUR"

[database]
engine = "sqlite"
path = "ledger.sqlite"
timeout = 2.5

[dashboard]
default_period = "this-year"
trend_months = 12

[display]
mode = "both"
output_dir = "exports"
amount_decimals = 0

[logging]
level = "debug"
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.owner_id == "corner-shop"
    assert cfg.currency == "EUR"
    assert cfg.database.path == (tmp_path / "ledger.sqlite").resolve()
    assert cfg.database.timeout == 2.5
    assert cfg.dashboard.default_period == "this-year"
    assert cfg.dashboard.trend_months == 12
    assert cfg.display_mode == "both"
    assert cfg.output_dir == (tmp_path / "exports").resolve()
    assert cfg.amount_decimals == 0
    assert cfg.log_level == "DEBUG"


@pytest.mark.parametrize(
    "content",
    [
        '[dashboard]\ndefault_period = "custom"\n',
        "[dashboard]\ntrend_months = 0\n",
        '[display]\nmode = "html"\n',
        '[logging]\nlevel = "LOUD"\n',
        "ledger = 3\n",
        "[ledger\n",
    ],
)
def test_invalid_values_are_rejected(tmp_path, content):
    path = write_config(tmp_path, content)

    with pytest.raises(ValueError):
        load_app_config(str(path))


def test_missing_file_is_reported(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))
