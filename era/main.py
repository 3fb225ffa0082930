import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import FormData, UploadFile

from era.config import Settings
from era.errors import EmailError, ERAError, ProviderError, UploadRejectedError, ValidationError
from era.llm_client import GenerationClient
from era.llm_parsing import normalize
from era.llm_prompts import ExperimentSpec, select_prompt
from era.mailer import Mailer
from era.uploads import StoredUpload, ensure_upload_dir, remove_quietly, save_upload

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

SERVICE_NAME = "ERA v0.dev Integration"
# Room for the multipart boundaries and text fields on top of the file itself
FORM_OVERHEAD_BYTES = 64 * 1024

settings = Settings.from_env()
generation_client = GenerationClient(settings)
mailer = Mailer(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_upload_dir(settings.upload_dir)
    missing = [
        name
        for name, ok in (
            ("V0_API_KEY", settings.has_provider_key),
            ("EMAIL_USER", bool(settings.email_user)),
            ("EMAIL_PASS", bool(settings.email_pass)),
        )
        if not ok
    ]
    if missing:
        log.warning("startup: missing environment variables: %s", ", ".join(missing))
    log.info("startup: %s ready (mode=%s, uploads=%s)", SERVICE_NAME, settings.provider_mode, settings.upload_dir)
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allow_origins) or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid, request.method, request.url.path, getattr(response, "status_code", "?"), dur_ms,
        )


def _reject_oversize_body(request: Request) -> None:
    """Refuse a body whose declared length cannot fit the upload ceiling, before it is spooled."""
    try:
        declared = int(request.headers.get("content-length") or 0)
    except ValueError:
        return
    if declared > settings.max_upload_bytes + FORM_OVERHEAD_BYTES:
        raise UploadRejectedError(f"File too large (limit {settings.max_upload_bytes} bytes)")


def _form_text(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    if value is None or isinstance(value, UploadFile):
        return None
    return str(value)


def _is_upload(value: Any) -> bool:
    return isinstance(value, UploadFile) and bool(value.filename)


def _experiment_spec_from_form(form: FormData) -> ExperimentSpec:
    data_points = [str(v) for v in form.getlist("dataPoints") if isinstance(v, str) and v.strip()]
    return ExperimentSpec(
        redirect_condition=_form_text(form, "redirect"),
        tracked_data_points=data_points,
        modifications=_form_text(form, "modifications"),
        multiple_versions=_form_text(form, "multipleVersions"),
        version_difference=_form_text(form, "versionDifference"),
        survey_redirect_url=_form_text(form, "qualtricsUrl"),
    )


def _send_generation_email(user_email: Optional[str], prompt: str, code: str) -> None:
    try:
        mailer.send_generation(user_email, prompt, code)
    except EmailError as e:
        log.warning("generation email not sent: %s", e)


def _error_message(exc: ERAError) -> str:
    if isinstance(exc, ProviderError):
        return f"Failed to generate webpage with v0.dev: {exc}"
    return str(exc)


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {
        "status": "OK",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


@app.get("/api/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return generation_client.status()


@app.post("/api/generate-webpage")
async def generate_webpage(request: Request, background_tasks: BackgroundTasks):
    stored: Optional[StoredUpload] = None
    try:
        _reject_oversize_body(request)
        form = await request.form()
        screenshot = form.get("screenshot")
        if not _is_upload(screenshot):
            raise ValidationError("Screenshot is required")

        stored = await save_upload(screenshot, settings.upload_dir, settings.max_upload_bytes, image_only=True)
        spec = _experiment_spec_from_form(form)
        prompt = select_prompt(spec)
        if not spec.is_complete():
            log.info("generate: experiment fields incomplete; using minimal prompt")

        client = generation_client
        raw = await run_in_threadpool(client.generate, stored.read_bytes(), stored.content_type, prompt)
        generated_code = await run_in_threadpool(normalize, raw, client.convert)

        background_tasks.add_task(_send_generation_email, _form_text(form, "email"), prompt, generated_code)
        return {"success": True, "generatedCode": generated_code, "prompt": prompt}
    except ERAError as e:
        log.warning("generate: %s: %s", type(e).__name__, e)
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": _error_message(e)})
    except Exception as e:
        log.exception("generate: unexpected error")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e) or "Failed to generate webpage"})
    finally:
        if stored is not None:
            remove_quietly(stored.path)


@app.post("/api/share-example")
async def share_example(request: Request):
    stored: Optional[StoredUpload] = None
    try:
        _reject_oversize_body(request)
        form = await request.form()
        upload = next((v for _, v in form.multi_items() if _is_upload(v)), None)
        if upload is not None:
            stored = await save_upload(upload, settings.upload_dir, settings.max_upload_bytes)

        await run_in_threadpool(
            mailer.send_shared_example,
            _form_text(form, "yourEmail"),
            _form_text(form, "exampleDesc"),
            stored.path if stored else None,
            stored.filename if stored else None,
            stored.content_type if stored else None,
        )
        return {"success": True}
    except ERAError as e:
        log.warning("share-example: %s: %s", type(e).__name__, e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    except Exception as e:
        log.exception("share-example: unexpected error")
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to share example"})
    finally:
        if stored is not None:
            remove_quietly(stored.path)


# Registered last so the API routes above take precedence.
public_dir = Path("public")
if public_dir.exists():
    app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")


def run() -> None:
    import uvicorn

    uvicorn.run("era.main:app", host="0.0.0.0", port=settings.port)
