import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from config.environment import settings
from controllers.products import router as ProductsRouter
from controllers.taxonomy import categories_router as CategoriesRouter
from controllers.taxonomy import materials_router as MaterialsRouter
from controllers.taxonomy import tags_router as TagsRouter
from controllers.collections import router as CollectionsRouter
from controllers.users import router as UsersRouter
from controllers.contact import router as ContactRouter
from errors import CatalogError, ConstraintViolation, ValidationError
from serializers.common import field_errors

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title="Alahas Catalog API",
    description="Jewelry catalog storefront and admin back-office API built with FastAPI",
    version="1.0.0"
)

# CORS Configuration
origins = [
    "http://127.0.0.1:5173",
    "http://localhost:5173"
]

# Add production frontend URL if exists
if settings.frontend_url:
    origins.append(settings.frontend_url)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"]
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    body = {"ok": False, "error": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, ConstraintViolation) and exc.dependents is not None:
        body["dependents"] = exc.dependents
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": "Invalid data", "errors": field_errors(exc)}
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


app.include_router(ProductsRouter, prefix="/api", tags=["Products"])
app.include_router(CategoriesRouter, prefix="/api", tags=["Categories"])
app.include_router(MaterialsRouter, prefix="/api", tags=["Materials"])
app.include_router(TagsRouter, prefix="/api", tags=["Tags"])
app.include_router(CollectionsRouter, prefix="/api", tags=["Collections"])
app.include_router(UsersRouter, prefix="/api", tags=["Auth"])
app.include_router(ContactRouter, prefix="/api", tags=["Contact"])

@app.get('/')
def home():
    return {'message': 'Welcome to the Alahas Catalog API! Visit /docs for API documentation.'}
