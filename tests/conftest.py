import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('PASSWORD_HASH_ROUNDS', '1000')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kin_backend.auth.dependencies import get_mailer  # noqa: E402
from kin_backend.auth.jwt_handler import TokenService  # noqa: E402
from kin_backend.auth.passwords import PasswordHasher  # noqa: E402
from kin_backend.core.config import Settings  # noqa: E402
from kin_backend.core.errors import EmailDeliveryFailed  # noqa: E402
from kin_backend.core.rate_limit import limiter  # noqa: E402
from kin_backend.database import Base, get_db  # noqa: E402
from kin_backend.main import create_app  # noqa: E402
from kin_backend.models import advisor, committee, post  # noqa: E402,F401
from kin_backend.models.user import ROLE_USER, User  # noqa: E402


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, email, subject, code, token):
        if self.fail:
            raise EmailDeliveryFailed()
        self.sent.append({'email': email, 'subject': subject, 'code': code, 'token': token})

    @property
    def last_code(self):
        return self.sent[-1]['code']


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        database_url='sqlite://',
        jwt_verify_secret='verify-secret',
        jwt_login_secret='login-secret',
        password_reset_secret='reset-secret',
        cookie_secure=False,
        cookie_samesite='lax',
        password_hash_rounds=1000,
        upload_dir=str(tmp_path),
    )


@pytest.fixture
def hasher(app_settings) -> PasswordHasher:
    return PasswordHasher(app_settings)


@pytest.fixture
def tokens(app_settings, hasher) -> TokenService:
    return TokenService(app_settings, hasher)


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db, hasher):
    def factory(
        email: str = 'member@example.com',
        password: str = 'secret-pass',
        role: str = ROLE_USER,
        is_verified: bool = True,
        is_banned: bool = False,
        name: str = 'Member',
    ) -> User:
        user = User(
            name=name,
            email=email,
            hashed_password=hasher.hash(password),
            role=role,
            is_verified=is_verified,
            is_banned=is_banned,
            token_version=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.enabled = True


@pytest.fixture
def client(db, app_settings, mailer):
    app = create_app(app_settings)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    return TestClient(app)

