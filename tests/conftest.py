from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient

from disk_backend.config import Settings
from disk_backend.container import build_services
from disk_backend.database import Database
from disk_backend.main import create_app
from disk_backend.services.cache import Cache
from disk_backend.services.email import Mailer, MailTransportError

TEST_SECRET = "test-signing-secret"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        super().__init__("smtp.test", 465, "noreply@test", "")
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, address, subject, body, html=None):
        if self.fail:
            raise MailTransportError("Failed to reach mail server")
        self.sent.append((address, subject, body))

    def last_code(self) -> str:
        _, _, body = self.sent[-1]
        return body.split("code is ")[1].split(".")[0]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def cache(redis_client) -> Cache:
    return Cache(redis_client)


@pytest.fixture
def database() -> Database:
    db = Database.from_url("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        app_url="http://files.test",
        upload_dir=str(tmp_path / "upload"),
        log_level="WARNING",
        log_dir="",
    )


@pytest.fixture
def services(settings, database, redis_client, mailer, clock):
    return build_services(
        settings,
        database=database,
        redis_client=redis_client,
        mailer=mailer,
        clock=clock,
    )


@pytest.fixture
def client(settings, services):
    with TestClient(create_app(settings, services)) as test_client:
        yield test_client
