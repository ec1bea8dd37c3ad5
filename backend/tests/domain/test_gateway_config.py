from booking.domain.gateway import (
    DEFAULT_PREPROD_HOST,
    DEFAULT_PROD_HOST,
    GatewayMode,
    build_redirect_url,
    extract_merchant_reference,
    extract_payment_status,
    is_loopback_host,
    resolve_gateway_config,
    resolve_mode,
)


def test_loopback_hosts() -> None:
    assert is_loopback_host("localhost")
    assert is_loopback_host("127.0.0.1")
    assert is_loopback_host("[::1]")
    assert is_loopback_host("shop.local")
    assert is_loopback_host(None)
    assert not is_loopback_host("conciergerie.example")


def test_resolve_mode_prefers_explicit_override() -> None:
    assert resolve_mode({"PAYMENT_ENV": "production"}, "http://localhost:3000") == GatewayMode.PROD
    assert resolve_mode({"PAYMENT_ENV": "sandbox"}, "https://shop.example") == GatewayMode.PREPROD
    assert resolve_mode({}, "http://localhost:3000") == GatewayMode.PREPROD
    assert resolve_mode({}, "https://shop.example") == GatewayMode.PROD
    assert resolve_mode({"PAYMENT_ENV": "weird"}, "https://shop.example") == GatewayMode.PROD


def test_scoped_credentials_win_over_generic() -> None:
    env = {
        "PAYMENT_MERCHANT_ID": "generic",
        "PAYMENT_PROD_MERCHANT_ID": "prod-merchant",
        "PAYMENT_API_KEY_ID": "key",
        "PAYMENT_API_SECRET": "secret",
    }
    config = resolve_gateway_config(env, "https://shop.example")
    assert config.mode == GatewayMode.PROD
    assert config.merchant_id == "prod-merchant"
    assert config.api_host == DEFAULT_PROD_HOST
    assert config.has_api_credentials

    preprod = resolve_gateway_config(env, "http://localhost")
    assert preprod.merchant_id == "generic"
    assert preprod.api_host == DEFAULT_PREPROD_HOST


def test_missing_credentials() -> None:
    config = resolve_gateway_config({}, "http://localhost")
    assert not config.has_api_credentials
    assert config.merchant_id == ""


def test_event_field_extraction() -> None:
    event = {"payment": {"status": "CAPTURED", "paymentOutput": {"references": {"merchantReference": "wc_9"}}}}
    assert extract_merchant_reference(event) == "wc_9"
    assert extract_payment_status(event) == "CAPTURED"
    assert extract_merchant_reference({}) == ""
    assert extract_payment_status({"payment": {"statusOutput": {"statusCode": 5}}}) == "5"


def test_build_redirect_url() -> None:
    assert build_redirect_url("https://pay/x", "ignored") == "https://pay/x"
    assert build_redirect_url(None, "preprod.example/abc") == "https://payment.preprod.example/abc"
    assert build_redirect_url(None, None) is None
