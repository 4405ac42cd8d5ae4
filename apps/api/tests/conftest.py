import itertools
import os

os.environ.setdefault("DRIVER_API_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DRIVER_API_TESTING", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import driver_api.models  # noqa: F401,E402
from driver_api.auth.actor import AdminActor, DriverActor  # noqa: E402
from driver_api.auth.jwt import TokenClaims, issue_jwt  # noqa: E402
from driver_api.auth.passwords import hash_password  # noqa: E402
from driver_api.config import settings  # noqa: E402
from driver_api.db.base import Base  # noqa: E402
from driver_api.db.session import engine as app_engine  # noqa: E402
from driver_api.db.session import get_db  # noqa: E402
from driver_api.db.types import utc_now  # noqa: E402
from driver_api.integrations.blob_storage import get_blob_storage, normalize_blob_name  # noqa: E402
from driver_api.integrations.errors import BlobStorageUnavailableError  # noqa: E402
from driver_api.main import app  # noqa: E402
from driver_api.models.driver import Driver, User, UserRole  # noqa: E402
from driver_api.models.epod_file import EpodFile, EpodStatus  # noqa: E402
from driver_api.models.order import Order, OrderStatus, PipelineStage  # noqa: E402
from driver_api.observability import metrics_store  # noqa: E402

FIXTURE_PASSWORD_HASH = hash_password("secret1")
PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


class InMemoryBlobStorage:
    """Object store double: keeps blobs in a dict and fakes pre-signed URLs."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.available = True
        self.exists_calls = 0

    def _key(self, blob_name: str) -> str:
        return normalize_blob_name(blob_name, settings.blob_bucket)

    def put(self, blob_name: str, content: bytes = PDF_BYTES) -> None:
        self.blobs[self._key(blob_name)] = content

    def exists(self, blob_name: str) -> bool:
        self.exists_calls += 1
        return self._key(blob_name) in self.blobs

    def upload(self, blob_name, content, content_type: str) -> None:
        data = content if isinstance(content, bytes) else content.read()
        self.blobs[self._key(blob_name)] = data
        self.content_types[self._key(blob_name)] = content_type

    def create_upload_url(self, blob_name: str, content_type: str, ttl_s: int) -> str:
        return f"https://blob.test/{settings.blob_bucket}/{self._key(blob_name)}?op=put&ttl={ttl_s}"

    def create_download_url(self, blob_name: str, ttl_s: int) -> str:
        return f"https://blob.test/{settings.blob_bucket}/{self._key(blob_name)}?op=get&ttl={ttl_s}"

    def ping(self) -> None:
        if not self.available:
            raise BlobStorageUnavailableError("ping")


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture
def db_session():
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def blob_storage():
    return InMemoryBlobStorage()


@pytest.fixture
def client(blob_storage):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: blob_storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_driver_user(db, login: str, full_name: str) -> Driver:
    user = User(login=login, password_hash=FIXTURE_PASSWORD_HASH, role=UserRole.DRIVER)
    db.add(user)
    db.flush()
    driver = Driver(user_id=user.id, full_name=full_name, phone="+48 600 000 000")
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return driver


@pytest.fixture
def admin_user(db_session) -> User:
    user = User(login="admin", password_hash=FIXTURE_PASSWORD_HASH, role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def driver(db_session) -> Driver:
    return _create_driver_user(db_session, "jan", "Jan Kowalski")


@pytest.fixture
def other_driver(db_session) -> Driver:
    return _create_driver_user(db_session, "anna", "Anna Nowak")


@pytest.fixture
def admin_actor(admin_user) -> AdminActor:
    return AdminActor(user_id=admin_user.id)


@pytest.fixture
def driver_actor(driver) -> DriverActor:
    return DriverActor(user_id=driver.user_id, driver_id=driver.id)


@pytest.fixture
def other_driver_actor(other_driver) -> DriverActor:
    return DriverActor(user_id=other_driver.user_id, driver_id=other_driver.id)


def bearer(claims: TokenClaims) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_jwt(claims, settings.jwt_secret)}"}


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return bearer(TokenClaims(user_id=admin_user.id, role="Admin"))


@pytest.fixture
def driver_headers(driver) -> dict[str, str]:
    return bearer(TokenClaims(user_id=driver.user_id, role="Driver", driver_id=driver.id))


@pytest.fixture
def other_driver_headers(other_driver) -> dict[str, str]:
    return bearer(
        TokenClaims(user_id=other_driver.user_id, role="Driver", driver_id=other_driver.id)
    )


@pytest.fixture
def make_order(db_session):
    numbers = itertools.count(1)

    def _make(
        driver: Driver | None = None,
        status: OrderStatus = OrderStatus.PLANNED,
        stage: PipelineStage = PipelineStage.OPEN,
        **fields,
    ) -> Order:
        order = Order(
            order_number=fields.pop("order_number", f"Z-{next(numbers):05d}"),
            pickup_address=fields.pop("pickup_address", "Warszawa, Prosta 1"),
            delivery_address=fields.pop("delivery_address", "Krakow, Dluga 2"),
            cargo_info=fields.pop("cargo_info", "2 pallets"),
            driver_id=driver.id if driver is not None else None,
            status=status,
            pipeline_stage=stage,
            **fields,
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


@pytest.fixture
def make_epod(db_session):
    def _make(
        order: Order,
        blob_name: str | None = None,
        status: EpodStatus = EpodStatus.PENDING,
        uploaded: bool = True,
    ) -> EpodFile:
        now = utc_now()
        epod = EpodFile(
            order_id=order.id,
            blob_name=blob_name if blob_name is not None else f"orders/{order.id}/epod_fixture.pdf",
            created_utc=now,
            status=status,
            uploaded_utc=now if uploaded else None,
            confirmed_utc=now if status == EpodStatus.CONFIRMED else None,
        )
        db_session.add(epod)
        db_session.commit()
        db_session.refresh(epod)
        db_session.refresh(order)
        return epod

    return _make
