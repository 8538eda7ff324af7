import pytest

from solana_trade_stream import config
from solana_trade_stream.constants import SOLANA_MAINNET_RPC_URL

_VARS = (
    "SOLANA_RPC_URL",
    "WATCH_ADDRESS",
    "FOLLOW_NEW_SIGNATURES",
    "SIGNATURE_BATCH_SIZE",
    "TRADE_BATCH_SIZE",
    "MAX_CONCURRENT_REQUESTS",
    "QUEUE_MAX_SIZE",
    "MAX_SEEN_SIGNATURES",
    "SWAPS_ONLY",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = config.load_settings()

    assert settings.rpc_url == SOLANA_MAINNET_RPC_URL
    assert settings.watch_address is None
    assert settings.follow_new_signatures is False
    assert settings.signature_batch_size == 1000
    assert settings.trade_batch_size == 50
    assert settings.queue_max_size is None
    assert settings.max_seen_signatures is None
    assert settings.log_level == "INFO"


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("WATCH_ADDRESS", " 9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM ")
    monkeypatch.setenv("FOLLOW_NEW_SIGNATURES", "yes")
    monkeypatch.setenv("SWAPS_ONLY", "1")
    monkeypatch.setenv("QUEUE_MAX_SIZE", "500")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = config.load_settings()

    assert settings.watch_address == "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
    assert settings.follow_new_signatures is True
    assert settings.swaps_only is True
    assert settings.queue_max_size == 500
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SWAPS_ONLY", "maybe"),
        ("QUEUE_MAX_SIZE", "0"),
        ("SIGNATURE_BATCH_SIZE", "1001"),
        ("TRADE_BATCH_SIZE", "0"),
    ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        config.load_settings()
