import base64

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from fertigmeldung import FertigmeldungService
from fertigmeldung.config import configure_logging

configure_logging()

app = FastAPI(title="Fertigmeldung PDF filler")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

fill_service = FertigmeldungService()


def handler(event, context=None):
    """Serverless entry point: gateway event in, gateway response dict out."""
    event = event or {}
    response = fill_service.handle(
        event.get("httpMethod", "GET"),
        headers=event.get("headers") or {},
        body=event.get("body"),
        body_is_base64=bool(event.get("isBase64Encoded")),
    )
    return response.to_event()


@app.get("/health")
def health():
    return {"ok": True}


@app.api_route("/fill_pdf", methods=["GET", "POST", "OPTIONS"])
@app.api_route("/.netlify/functions/fill_pdf", methods=["GET", "POST", "OPTIONS"])
async def fill_pdf(request: Request):
    body = await request.body()
    result = await run_in_threadpool(fill_service.handle, request.method, dict(request.headers), body)
    content = base64.b64decode(result.body) if result.is_base64_encoded else result.body
    return Response(content=content, status_code=result.status_code, headers=result.headers)
