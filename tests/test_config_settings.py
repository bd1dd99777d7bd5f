from decimal import Decimal

from evmbridge.config import Settings


def test_optimism_rpc_legacy_alias(monkeypatch):
    """Optimism RPC URL should load from the legacy OP_RPC_URL name when present."""

    monkeypatch.setenv("OPTIMISM_RPC_URL", "")
    monkeypatch.setenv("OP_RPC_URL", "https://op.example")

    settings = Settings()

    assert settings.optimism_rpc_url == "https://op.example"


def test_optimism_rpc_direct_env(monkeypatch):
    """The primary environment variable wins over the legacy alias."""

    monkeypatch.setenv("OPTIMISM_RPC_URL", "https://primary.example")
    monkeypatch.setenv("OP_RPC_URL", "https://op.example")

    settings = Settings()

    assert settings.optimism_rpc_url == "https://primary.example"


def test_rpc_url_lookup(monkeypatch):
    monkeypatch.setenv("BASE_RPC_URL", "https://base.example")

    settings = Settings()

    assert settings.rpc_url_for("base") == "https://base.example"
    assert settings.rpc_url_for("fantom") == ""


def test_default_gas_price_in_wei():
    settings = Settings(default_gas_price_gwei={"ethereum": Decimal("30"), "base": Decimal("0.01"), "bsc": None})

    assert settings.default_gas_price_wei("ethereum") == 30 * 10**9
    assert settings.default_gas_price_wei("base") == 10**7
    assert settings.default_gas_price_wei("bsc") is None
    assert settings.default_gas_price_wei("polygon") is None
