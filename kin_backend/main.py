import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from kin_backend.auth.jwt_handler import TokenService
from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.config import Settings, settings, validate_runtime_config
from kin_backend.core.rate_limit import limiter
from kin_backend.core.responses import register_exception_handlers
from kin_backend.database import Base, build_engine, build_session_factory
from kin_backend.models import advisor, committee, post, user  # noqa: F401  (register tables)
from kin_backend.routes import advisor_routes, auth_routes, committee_routes, post_routes, user_routes
from kin_backend.services.mailer import Mailer

logger = logging.getLogger(__name__)

API_PREFIX = '/api/v1'


def create_app(app_settings: Settings = settings) -> FastAPI:
    validate_runtime_config(app_settings)
    logging.basicConfig(level=app_settings.log_level)

    app = FastAPI(title='KIN API')

    engine = build_engine(app_settings.database_url)
    hasher = PasswordHasher(app_settings)
    app.state.settings = app_settings
    app.state.session_factory = build_session_factory(engine)
    app.state.hasher = hasher
    app.state.tokens = TokenService(app_settings, hasher)
    app.state.mailer = Mailer(app_settings)

    limiter.enabled = app_settings.rate_limit_enabled
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(app_settings.cors_whitelist),
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    @app.on_event('startup')
    def initialize_database() -> None:
        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    @app.get('/')
    def root():
        return {'status': 'KIN API Running'}

    app.include_router(auth_routes.router, prefix=f'{API_PREFIX}/auth')
    app.include_router(user_routes.router, prefix=f'{API_PREFIX}/users')
    app.include_router(committee_routes.router, prefix=f'{API_PREFIX}/ec')
    app.include_router(advisor_routes.router, prefix=f'{API_PREFIX}/advisors')
    app.include_router(post_routes.router, prefix=f'{API_PREFIX}/posts')
    return app


app = create_app()
