from flask import Flask, current_app
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

# (module, blueprint attribute, url prefix); close requests share the /tickets prefix
BLUEPRINTS = (
    ('tickets', 'tickets_bp', '/tickets'),
    ('close_requests', 'close_bp', '/tickets'),
    ('settings', 'settings_bp', '/settings'),
    ('repairs', 'rpr_bp', '/repairs'),
    ('notifications', 'notif_bp', '/notifications'),
)

REDOC_PAGE = (
    "<!DOCTYPE html><html><head><title>Helpdesk Workflow API</title>"
    "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
    "</head><body><redoc spec-url='/openapi.json'></redoc>"
    "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
    "</body></html>"
)


def _engine_for(url: str):
    if url.endswith(':memory:'):
        # one connection shared by every session, or each would see its own empty database
        return create_engine(url, future=True, connect_args={'check_same_thread': False}, poolclass=StaticPool)
    return create_engine(url, future=True)


def _error_body(status: int, title: str, kind: str, detail: str):
    return {'error': {'status': status, 'title': title, 'kind': kind, 'detail': detail}}, status


def _register_error_handlers(app: Flask):
    from .errors import WorkflowError, HTTP_STATUS_KINDS

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(e):  # type: ignore
        return {'error': e.to_dict()}, e.status_code

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, HTTP_STATUS_KINDS.get(e.code, 'http'), e.description)
        app.logger.exception('Unhandled exception')
        return _error_body(500, 'Internal Server Error', 'internal', 'Unexpected error')

    # token problems use the same error shape as every other failure
    def auth_error(detail: str):
        return _error_body(401, 'Unauthorized', HTTP_STATUS_KINDS[401], detail)

    jwt.unauthorized_loader(auth_error)
    jwt.invalid_token_loader(auth_error)
    jwt.expired_token_loader(lambda header, payload: auth_error('Token has expired'))


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from importlib import import_module
    from .config.reopen import load_reopen_defaults
    from .openapi_builder import build_openapi_spec

    app = Flask(__name__)
    app.config.update(
        JWT_SECRET_KEY=os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        DATABASE_URL=os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        REOPEN_DEFAULTS=load_reopen_defaults(),
    )
    if config:
        app.config.update(config)

    db_engine = _engine_for(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))
    jwt.init_app(app)

    for module, attr, prefix in BLUEPRINTS:
        app.register_blueprint(getattr(import_module(f'.routes.{module}', __name__), attr), url_prefix=prefix)
    _register_error_handlers(app)

    @app.teardown_appcontext
    def remove_session(exc):  # type: ignore
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        return REDOC_PAGE

    app.logger.debug('helpdesk app ready on %s', db_engine.url.render_as_string(hide_password=True))
    return app


def get_db():
    return SessionLocal()


def get_workflow():
    """Orchestrator bound to the request session and the app's reopen defaults."""
    from .services.workflow import WorkflowOrchestrator
    from .services.reopen_config import ReopenConfigStore
    session = get_db()
    store = ReopenConfigStore(session, current_app.config.get('REOPEN_DEFAULTS'))
    return WorkflowOrchestrator(session, config_store=store)
