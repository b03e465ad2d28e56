import logging
import os
from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import EmailStr, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import TokenIssuer
from database import JsonFileStore, Store
from errors import SplitEaseError, TokenMissing, UserNotFound
from ledger import ExpenseLedger
from notifier import Notifier, SendGridMail, TwilioSms
from payment_links import PaymentLinkService
from schemas import CamelModel, User
from verification import VerificationService

# Environment
DEFAULT_JWT_SECRET = "dev-secret-change-me-before-deploying"
JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_TTL_DAYS = int(os.getenv("JWT_TTL_DAYS", 30))
DATA_FILE = os.getenv("DATA_FILE", "data.json")
DEFAULT_PHONE_REGION = os.getenv("DEFAULT_PHONE_REGION", "US")
PAYMENT_LINK_TTL_DAYS = int(os.getenv("PAYMENT_LINK_TTL_DAYS", 7))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "")

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("splitease")

if JWT_SECRET == DEFAULT_JWT_SECRET:
    logger.warning("JWT_SECRET not set, signing tokens with the built-in development secret")

app = FastAPI(title="SplitEase")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer(auto_error=False)


# Wiring
def build_notifier() -> Notifier:
    sms = None
    email = None
    if TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER:
        sms = TwilioSms(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER)
    if SENDGRID_API_KEY and SENDGRID_FROM_EMAIL:
        email = SendGridMail(SENDGRID_API_KEY, SENDGRID_FROM_EMAIL)
    if not (sms or email):
        logger.warning("DEV MODE: no SMS or email provider configured, verification codes are returned in responses")
    elif not (sms and email):
        logger.warning("Only %s verification is available", "SMS" if sms else "email")
    return Notifier(sms=sms, email=email)


def configure(
    store: Store,
    notifier: Notifier,
    secret: str = JWT_SECRET,
    token_ttl: timedelta = timedelta(days=JWT_TTL_DAYS),
    payment_link_ttl: Optional[timedelta] = timedelta(days=PAYMENT_LINK_TTL_DAYS),
) -> None:
    tokens = TokenIssuer(secret, ttl=token_ttl)
    app.state.store = store
    app.state.tokens = tokens
    app.state.verification = VerificationService(store, tokens, notifier, DEFAULT_PHONE_REGION)
    app.state.ledger = ExpenseLedger(store, payment_link_ttl)
    app.state.payment_links = PaymentLinkService(store)


configure(JsonFileStore(DATA_FILE), build_notifier())


# Errors
def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message}, headers=headers)


@app.exception_handler(SplitEaseError)
async def handle_splitease_error(request: Request, exc: SplitEaseError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, message, exc.headers)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(400, message)


@app.middleware("http")
async def catch_unexpected_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")


# Helpers
def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "phone": user.phone,
        "email": user.email,
    }


def get_current_user(request: Request, creds: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    if creds is None:
        raise TokenMissing()
    return request.app.state.tokens.verify(creds.credentials)


# Request Models
class RequestCodeRequest(CamelModel):
    contact: str
    name: Optional[str] = None
    is_signup: bool = False


class VerifyCodeRequest(CamelModel):
    contact: str
    code: str


class ParticipantRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class ExpenseRequest(CamelModel):
    description: Optional[str] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    participants: List[ParticipantRequest] = []
    split_type: Optional[str] = "equal"


class PayRequest(CamelModel):
    payment_method: Optional[str] = None


@app.get("/")
def root():
    return {
        "app": "SplitEase",
        "status": "ok",
        "endpoints": [
            "POST /api/auth/request-code",
            "POST /api/auth/verify-code",
            "GET  /api/auth/me",
            "GET  /api/expenses",
            "POST /api/expenses",
            "GET  /api/expenses/{id}",
            "GET  /api/payment-links/{id}",
            "POST /api/payment-links/{id}/pay",
            "GET  /api/stats",
        ],
    }


# Auth endpoints
@app.post("/api/auth/request-code")
def request_code(payload: RequestCodeRequest, request: Request):
    delivery = request.app.state.verification.request_code(payload.contact, payload.name, payload.is_signup)
    body = {
        "success": True,
        "contactType": delivery.contact_type,
        "message": f"Verification code sent to your {delivery.contact_type}",
    }
    if delivery.dev_mode:
        body.update({"devMode": True, "code": delivery.code})
    return body


@app.post("/api/auth/verify-code")
def verify_code(payload: VerifyCodeRequest, request: Request):
    user, token = request.app.state.verification.verify_code(payload.contact, payload.code)
    return {"success": True, "token": token, "user": serialize_user(user)}


@app.get("/api/auth/me")
def me(request: Request, current=Depends(get_current_user)):
    user = request.app.state.store.find_user(current["id"])
    if user is None:
        raise UserNotFound()
    return {"success": True, "user": serialize_user(user)}


# Expenses
@app.post("/api/expenses", status_code=201)
def create_expense(payload: ExpenseRequest, request: Request, current=Depends(get_current_user)):
    expense = request.app.state.ledger.create_expense(
        current["id"],
        payload.description,
        payload.amount,
        [p.model_dump() for p in payload.participants],
        payload.split_type,
    )
    return {
        "success": True,
        "expense": expense.model_dump(mode="json", by_alias=True),
        "message": "Expense created successfully!",
    }


@app.get("/api/expenses")
def list_expenses(request: Request, current=Depends(get_current_user)):
    items = request.app.state.ledger.list_expenses(current["id"])
    return {
        "success": True,
        "count": len(items),
        "expenses": [e.model_dump(mode="json", by_alias=True) for e in items],
    }


@app.get("/api/expenses/{expense_id}")
def get_expense(expense_id: str, request: Request, current=Depends(get_current_user)):
    expense = request.app.state.ledger.get_expense(current["id"], expense_id)
    return {"success": True, "expense": expense.model_dump(mode="json", by_alias=True)}


# Payment links (public)
@app.get("/api/payment-links/{link_id}")
def get_payment_link(link_id: str, request: Request):
    return {"success": True, "paymentDetails": request.app.state.payment_links.get_link_details(link_id)}


@app.post("/api/payment-links/{link_id}/pay")
def pay_payment_link(link_id: str, request: Request, payload: Optional[PayRequest] = None):
    method = payload.payment_method if payload else None
    link = request.app.state.payment_links.redeem(link_id, method)
    return {
        "success": True,
        "message": "Payment processed successfully!",
        "payment": {
            "amount": link.amount,
            "method": link.payment_method,
            "paidAt": link.paid_at.isoformat(),
        },
    }


# Stats
@app.get("/api/stats")
def stats(request: Request, current=Depends(get_current_user)):
    s = request.app.state.ledger.compute_stats(current["id"])
    return {
        "success": True,
        "stats": {
            "totalExpenses": s["total_expenses"],
            "totalAmount": s["total_amount"],
            "totalPaid": s["total_paid"],
            "totalPending": s["total_pending"],
        },
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
