import logging
import math
from typing import Optional, Tuple, Type, TypeVar

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

import crud
from auth import admin_tokens, require_admin
from codes import is_valid_slug, is_valid_url
from config import ADMIN_PASSWORD, BASE_URL, DEFAULT_ADMIN_PASSWORD, HOST, LOG_LEVEL, PORT
from db import SessionLocal, create_tables
from schemas import (
    AdminCreateRequest,
    AdminCreateResponse,
    AuthRequest,
    AuthResponse,
    LinkListResponse,
    LinkRecord,
    LinkStats,
    Pagination,
    ShortenRequest,
    ShortenResponse,
)

app = FastAPI(title="Link Shortener", description="A small URL shortener with click tracking and an admin API.")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_SQL_INTEGER = 2 ** 63 - 1

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger("url_shortener")

BodyModel = TypeVar("BodyModel", bound=BaseModel)


async def get_db():
    async with SessionLocal() as session:
        yield session


@app.on_event("startup")
async def on_startup():
    await create_tables()
    if ADMIN_PASSWORD == DEFAULT_ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD is not set, falling back to the default password.")
    logger.info(f"Link Shortener running on {BASE_URL}")


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")


@app.exception_handler(crud.CodeGenerationError)
async def code_generation_exception_handler(request: Request, exc: crud.CodeGenerationError):
    logger.error(f"Short code generation failed: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def short_url_for(code: str) -> str:
    return f"{BASE_URL}/{code}"


async def parse_body(request: Request, model: Type[BodyModel]) -> BodyModel:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")


def validate_url(url: Optional[str]) -> str:
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL format")
    return url


def parse_pagination(page: Optional[str], limit: Optional[str]) -> Tuple[int, int]:
    try:
        page_num = int(page) if page not in (None, "") else DEFAULT_PAGE
        limit_num = int(limit) if limit not in (None, "") else DEFAULT_LIMIT
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")
    if page_num < 1 or limit_num < 1 or limit_num > MAX_SQL_INTEGER \
            or (page_num - 1) * limit_num > MAX_SQL_INTEGER:
        raise HTTPException(status_code=400, detail="Invalid pagination parameters")
    return page_num, limit_num


@app.get("/")
def health_check():
    logger.info("Health check endpoint called.")
    return {"message": "Link Shortener API is running!"}


@app.post("/shorten", response_model=ShortenResponse)
async def shorten_url(req: ShortenRequest, db: AsyncSession = Depends(get_db)):
    logger.info(f"Shorten API called with url={req.url}")
    url = validate_url(req.url)
    link = await crud.create_link(db, url)
    logger.info(f"Shorten API response: code={link.short_code}, url={link.original_url}")
    return ShortenResponse(short_code=link.short_code, short_url=short_url_for(link.short_code), original_url=url)


@app.post("/admin/auth", response_model=AuthResponse)
async def admin_login(req: AuthRequest):
    token = admin_tokens.login(req.password)
    if token is None:
        logger.warning("Admin login failed: invalid password")
        raise HTTPException(status_code=401, detail="Invalid password")
    logger.info("Admin login succeeded, token issued")
    return AuthResponse(token=token)


@app.post(
    "/admin/create",
    response_model=AdminCreateResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": AdminCreateRequest.model_json_schema()}},
        }
    },
)
async def admin_create_link(request: Request, _: str = Depends(require_admin),
                            db: AsyncSession = Depends(get_db)):
    req = await parse_body(request, AdminCreateRequest)
    logger.info(f"Admin create API called with slug={req.slug}, url={req.url}")
    url = validate_url(req.url)
    if not req.slug:
        raise HTTPException(status_code=400, detail="Slug is required")
    if not is_valid_slug(req.slug):
        raise HTTPException(status_code=400, detail="Invalid slug format")
    if await crud.code_exists(db, req.slug):
        logger.warning(f"Admin create rejected: slug={req.slug} already taken")
        raise HTTPException(status_code=409, detail="Slug already taken")
    try:
        link = await crud.insert_link(db, req.slug, url)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Slug already taken")
    logger.info(f"Admin create response: code={link.short_code}, url={link.original_url}")
    return AdminCreateResponse(
        short_code=link.short_code,
        original_url=link.original_url,
        created_at=link.created_at,
        clicks=link.clicks,
        short_url=short_url_for(link.short_code),
    )


@app.get("/admin/links", response_model=LinkListResponse)
async def admin_list_links(page: Optional[str] = None, limit: Optional[str] = None,
                           search: Optional[str] = None, _: str = Depends(require_admin),
                           db: AsyncSession = Depends(get_db)):
    page_num, limit_num = parse_pagination(page, limit)
    search = search.strip() if search else None
    logger.info(f"Admin list API called with page={page_num}, limit={limit_num}, search={search}")
    total = await crud.count_links(db, search)
    links = await crud.list_links(db, limit_num, (page_num - 1) * limit_num, search)
    total_links = await crud.count_links(db) if search else total
    clicks = await crud.total_clicks(db)
    return LinkListResponse(
        links=[LinkRecord.model_validate(link) for link in links],
        pagination=Pagination(page=page_num, limit=limit_num, total=total,
                              totalPages=math.ceil(total / limit_num)),
        stats=LinkStats(totalLinks=total_links, totalClicks=clicks),
    )


@app.get("/stats/{code}", response_model=LinkRecord)
async def get_stats(code: str, db: AsyncSession = Depends(get_db)):
    logger.info(f"Stats API called with code={code}")
    link = await crud.get_link_by_code(db, code)
    if not link:
        logger.warning(f"Stats lookup failed: code={code} not found")
        raise HTTPException(status_code=404, detail="Short link not found")
    return LinkRecord.model_validate(link)


@app.get("/{code}")
async def redirect(code: str, db: AsyncSession = Depends(get_db)):
    logger.info(f"Redirect API called with code={code}")
    link = await crud.get_link_by_code(db, code)
    if not link:
        logger.warning(f"Redirect failed: code={code} not found")
        raise HTTPException(status_code=404, detail="Short link not found")
    url = link.original_url
    await crud.increment_clicks(db, code)
    logger.info(f"Redirecting to url={url} for code={code}")
    return RedirectResponse(url, status_code=302)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
