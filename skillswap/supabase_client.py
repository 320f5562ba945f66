from sqlalchemy.orm import sessionmaker
from supabase import create_client, Client


# 1. Session factory (for Database work outside the request session)
def make_session_factory(engine):
    """
    Sessions bound to the app engine, for code that runs on worker threads
    (the request-scoped db.session must not cross threads).
    """
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


# 2. Supabase Client (for Auth)
def create_supabase(url, key) -> Client:
    if not url or not key:
        raise RuntimeError("SUPABASE_URL or SUPABASE_KEY is not set in .env")
    return create_client(url, key)
