"""Supabase client initialization."""

from supabase import Client, create_client

from support_assistant.core.config import Settings, get_settings


def create_supabase(settings: Settings | None = None) -> Client:
    """
    Create a Supabase client configured with the service role key.

    Called once by the application factory; the handle is injected into
    the repositories that need it.

    Raises:
        RuntimeError: If client initialization fails
    """
    try:
        settings = settings or get_settings()
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e
