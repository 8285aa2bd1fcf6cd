import secrets

from storefront.core.config import Settings


def verify_service_key(token: str | None, settings: Settings) -> bool:
    expected = settings.supabase_service_role_key
    if not token or not expected:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))
