from sqlalchemy import text

from labbooking import database


def test_sqlite_engine_is_usable_from_worker_threads():
    engine = database.build_engine("sqlite://")
    assert engine.dialect.name == "sqlite"
    with engine.connect() as conn:
        assert conn.execute(text("SELECT 1")).scalar() == 1
    engine.dispose()


def test_get_db_closes_the_session(monkeypatch):
    closed = []

    class FakeSession:
        def close(self):
            closed.append(True)

    monkeypatch.setattr(database, "SessionLocal", FakeSession)
    sessions = database.get_db()
    assert isinstance(next(sessions), FakeSession)
    sessions.close()
    assert closed == [True]
