from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from core.health_check import health_check
from core.log import logger
from routes.auth import router as auth_router
from routes.ticket import router as ticket_router
from routes.admin_ticket import router as admin_ticket_router
from routes.event import router as event_router
from routes.payment import router as payment_router

health_check()

app = FastAPI(title="Event Tickets BE")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(ticket_router)
app.include_router(admin_ticket_router)
app.include_router(event_router)
app.include_router(payment_router)


def validation_error_details(errors) -> list:
    error_details = []
    for error in errors:
        loc = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        field = ".".join(loc) if loc else "general"
        error_details.append({"field": field, "message": error["msg"]})
    return error_details


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation error in request data.",
            "errors": validation_error_details(exc.errors()),
        },
    )


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "message": "Validation error in response data.",
            "errors": validation_error_details(exc.errors()),
        },
    )


@app.get("/")
async def hello():
    logger.info("hello")
    return {"Hello": "from event tickets BE"}


@app.get("/health")
def health():
    return {"status": "ok"}
