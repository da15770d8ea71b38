from abc import ABCMeta, abstractmethod
from typing import Any, Optional, Union
from fastapi import HTTPException
from fastapi.responses import JSONResponse, Response

from core.errors import (
    ConcurrencyConflict,
    EventNotFound,
    InvalidStatusTransition,
    PaymentProviderError,
    RegistrationClosed,
    ReservationValidationError,
    SoldOut,
    TicketingError,
    TicketNotFound,
)


class HttpResponseAbstract(metaclass=ABCMeta):
    @abstractmethod
    def response(self) -> Union[JSONResponse, Response, None]:
        pass


class Ok(HttpResponseAbstract):
    def __init__(self, data: Optional[Any]) -> None:
        if data is not None:
            self.data = data
        else:
            self.data = ""

    def response(self) -> JSONResponse:
        """
        parse class to JSONReponse
        """
        return JSONResponse(content=self.data, status_code=200)


class Created(HttpResponseAbstract):
    def __init__(self, data: Optional[Any]) -> None:
        if data is not None:
            self.data = data
        else:
            self.data = ""

    def response(self) -> JSONResponse:
        """
        parse class to JSONReponse
        """
        return JSONResponse(content=self.data, status_code=201)


class Unauthorized(HttpResponseAbstract):
    def __init__(
        self, message: str = "Unauthorized", custom_response: Optional[str] = None
    ) -> None:
        """
        custom_response: override default json response
        default json response:
        json:{
            'message': 'Unauthorized'
        }
        status_code: 401
        """
        self.message = message
        self.custom_response = custom_response

    def response(self) -> JSONResponse:
        if self.custom_response is None:
            return JSONResponse(content={"message": f"{self.message}"}, status_code=401)
        return JSONResponse(content=self.custom_response, status_code=401)


class BadRequest(HttpResponseAbstract):
    def __init__(
        self, message: Optional[str] = None, custom_response: Optional[Any] = None
    ) -> None:
        """
        message: bad request message, for default json response
        custom_response: override default json response
        default json response:
        json:{
            'message': f'{message}'
        }
        status_code: 400

        example override default json:
        BadRequest(custom_response={"code": "validation_error"}).response() -> JSONResponse(content={"code": "validation_error"}, status_code=400)
        """
        self.custom_response = None
        if custom_response is None:
            self.message = message
        else:
            self.custom_response = custom_response

    def response(self) -> JSONResponse:
        """
        parse class to JSONReponse
        """
        if self.custom_response is None:
            return JSONResponse(content={"message": self.message}, status_code=400)
        else:
            return JSONResponse(content=self.custom_response, status_code=400)


class NotFound(HttpResponseAbstract):
    def __init__(
        self, message: str = "Not Found", custom_response: Optional[Any] = None
    ) -> None:
        """
        custom_response: override default json response
        default json response:
        json:{
            'message': 'Not Found'
        }
        status_code: 404
        """
        self.custom_response = None
        if custom_response is not None:
            self.custom_response = custom_response
        else:
            self.message = message

    def response(self) -> JSONResponse:
        """
        parse class to JSONReponse
        """
        if self.custom_response is None:
            return JSONResponse(content={"message": self.message}, status_code=404)
        else:
            return JSONResponse(content=self.custom_response, status_code=404)


class InternalServerError(HttpResponseAbstract):
    def __init__(
        self, error: Optional[str] = None, custom_response: Optional[Any] = None
    ) -> None:
        """
        error: error string for defaut json response
        custom_response: override default json response
        default json response:
        json:{
            'error': '{error}'
        }
        status_code: 500
        """
        self.custom_response = None
        if custom_response is not None:
            self.custom_response = custom_response
        else:
            self.error = error

    def response(self) -> JSONResponse:
        """
        parse class to JSONReponse
        """
        if self.custom_response is None:
            raise HTTPException(status_code=500, detail="Something wrong with server")
        else:
            raise HTTPException(status_code=500, detail=self.custom_response)


class Conflict(HttpResponseAbstract):
    def __init__(self, message: str, code: Optional[str] = None, **extra: Any) -> None:
        """
        default json response:
        json:{
            'message': f'{message}',
            'code': f'{code}'
        }
        status_code: 409
        """
        self.content = {"message": message, "code": code, **extra}

    def response(self) -> JSONResponse:
        return JSONResponse(content=self.content, status_code=409)


class BadGateway(HttpResponseAbstract):
    def __init__(self, message: str = "Bad Gateway", code: Optional[str] = None) -> None:
        self.content = {"message": message, "code": code}

    def response(self) -> JSONResponse:
        return JSONResponse(content=self.content, status_code=502)


class ServiceUnavailable(HttpResponseAbstract):
    def __init__(
        self, message: str = "Service Unavailable", code: Optional[str] = None
    ) -> None:
        self.content = {"message": message, "code": code}

    def response(self) -> JSONResponse:
        return JSONResponse(
            content=self.content, status_code=503, headers={"Retry-After": "1"}
        )


def common_response(res: HttpResponseAbstract):
    return res.response()


def handle_ticketing_error(e: TicketingError) -> Union[JSONResponse, Response]:
    if isinstance(e, ReservationValidationError):
        return common_response(
            BadRequest(
                custom_response={"message": e.message, "code": e.code, "field": e.field}
            )
        )
    elif isinstance(e, SoldOut):
        return common_response(
            Conflict(message=e.message, code=e.code, available_seats=e.available)
        )
    elif isinstance(e, (RegistrationClosed, InvalidStatusTransition)):
        return common_response(Conflict(message=e.message, code=e.code))
    elif isinstance(e, (EventNotFound, TicketNotFound)):
        return common_response(
            NotFound(custom_response={"message": e.message, "code": e.code})
        )
    elif isinstance(e, ConcurrencyConflict):
        return common_response(ServiceUnavailable(message=e.message, code=e.code))
    elif isinstance(e, PaymentProviderError):
        return common_response(BadGateway(message=e.message, code=e.code))
    else:
        return common_response(InternalServerError(error=e.message))
