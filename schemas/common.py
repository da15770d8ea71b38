from typing import Optional
from pydantic import BaseModel, ConfigDict


class UnauthorizedResponse(BaseModel):
    message: str = "Unauthorized"


class BadRequestResponse(BaseModel):
    message: str
    code: Optional[str] = None
    field: Optional[str] = None


class ValidationErrorResponseDetail(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "message": "Validation error in request data.",
                "errors": [
                    {
                        "field": "number_of_seats",
                        "message": "Input should be a valid integer",
                    },
                ],
            }
        },
    )

    message: str
    errors: list[ValidationErrorResponseDetail]


class ForbiddenResponse(BaseModel):
    message: str = "You don't have permissions to perform this action"


class NotFoundResponse(BaseModel):
    message: str = "Not found"
    code: Optional[str] = None


class ConflictResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Requested 2 seat(s) but only 1 available",
                "code": "sold_out",
                "available_seats": 1,
            }
        },
    )

    message: str
    code: Optional[str] = None
    available_seats: Optional[int] = None


class BadGatewayResponse(BaseModel):
    message: str
    code: Optional[str] = None


class ServiceUnavailableResponse(BaseModel):
    message: str
    code: Optional[str] = None


class InternalServerErrorResponse(BaseModel):
    detail: str
