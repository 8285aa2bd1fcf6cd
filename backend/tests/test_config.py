from storefront.core.config import Settings


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


def test_dispatch_key_prefers_anon_key():
    settings = _settings(supabase_service_role_key="service-key", supabase_anon_key="anon-key")
    assert settings.get_dispatch_key() == "anon-key"


def test_blank_optional_values_are_unset():
    settings = _settings(
        supabase_service_role_key="service-key",
        supabase_anon_key="  ",
        process_webhook_queue_secret="",
    )

    assert settings.supabase_anon_key is None
    assert settings.process_webhook_queue_secret is None
    assert settings.get_dispatch_key() == "service-key"


def test_settings_cover_only_the_queue_environment():
    assert set(Settings.model_fields) == {
        "database_url",
        "redis_url",
        "supabase_url",
        "supabase_service_role_key",
        "supabase_anon_key",
        "process_webhook_queue_secret",
        "webhook_dispatch_timeout",
        "webhook_queue_claim_ttl",
        "webhook_queue_poll_interval",
        "webhook_queue_default_max_retries",
        "webhook_queue_pass_lock_enabled",
        "webhook_queue_pass_lock_ttl",
        "cors_origins",
    }
