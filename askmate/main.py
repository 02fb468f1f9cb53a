import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from askmate.core import config
from askmate.core.logging_config import configure_logging
from askmate.database import init_db
from askmate.routes import answer_routes, auth_routes, class_routes, question_routes

configure_logging()
config.validate_runtime_config()

app = FastAPI(title='AskMate API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'AskMate API Running'}


@app.get('/api/health')
def health():
    return {'status': 'ok', 'environment': config.APP_ENV}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(class_routes.router, prefix='/api/classes')
app.include_router(question_routes.router, prefix='/api/questions')
app.include_router(answer_routes.router, prefix='/api/answers')
