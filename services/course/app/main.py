import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings
from app.database import init_db
from app.prerequisites.router import router as prerequisites_router
from shared.middleware import error_envelope_middleware, request_id_middleware


def get_settings() -> Settings:
    return Settings()


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(levelname)s:%(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.settings = settings
    init_db(settings.course_database_url)

    # Redis pool backing the prerequisite edge-list cache
    app.state.redis = aioredis.from_url(
        settings.redis_url, decode_responses=True,
    )

    yield

    # Shutdown
    await app.state.redis.aclose()


SWAGGER_DESCRIPTION = """\
## Course Prerequisites Service

Owns the course prerequisite graph: which courses a learner must have
enrolled in, completed, or scored well enough in before taking another.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **Prerequisites** | Edge CRUD with cycle rejection, eligibility checks, chain audit, statistics |

### Authentication

Mutating endpoints require a valid JWT Bearer token in the `Authorization`
header carrying the `instructor` or `admin` role.
Token structure: `{"sub": "<user_uuid>", "email": "...", "roles": [...]}`.

### Requirement types

```
course_completion   completed enrollment in the prerequisite course
course_enrollment   any active enrollment (enrolled / in progress / completed)
minimum_score       completed with final_score >= requirement_value (default 70)
time_requirement    enrolled for >= requirement_value days (default 30)
skill_assessment, certification, experience_level, custom_requirement
                    reported as "not implemented" and never met
```
"""


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Course Prerequisites",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)

    app.include_router(prerequisites_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "service": "course"}

    return app


app = create_app()
