import threading
from datetime import date
from typing import Any, Dict, List

from fastapi import BackgroundTasks, Body, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel

from fsr_report.capture_utils import validate_scale_factor
from fsr_report.config import FSR_STORAGE_DIR, LOG_LEVEL, PDF_QUALITY, REPORT_OUTPUT_DIR, ROOT_PATH
from fsr_report.errors import (
    CaptureError,
    ConfigurationError,
    ExportInProgressError,
    FsrError,
    InvalidFieldValueError,
    MediaReadError,
    PageEncodeError,
    RecordImportError,
    UnknownFieldError,
)
from fsr_report.media_utils import bytes_to_data_url, convert_all
from fsr_report.preview import render_preview_html
from fsr_report.report import ReportExporter
from fsr_report.storage import FileStorage
from fsr_report.store import FormStore

import logging

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

app = FastAPI(root_path=ROOT_PATH)

# Allow the editor front-end to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = [
    (ExportInProgressError, 409),
    (UnknownFieldError, 422),
    (InvalidFieldValueError, 422),
    (ConfigurationError, 400),
    (RecordImportError, 400),
    (MediaReadError, 400),
    (CaptureError, 500),
    (PageEncodeError, 500),
]

_store = None
_store_lock = threading.Lock()
_exporter = ReportExporter(REPORT_OUTPUT_DIR)


def get_store() -> FormStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = FormStore(FileStorage(FSR_STORAGE_DIR))
            _store.prefill_dates(date.today().isoformat())
    return _store


def get_exporter() -> ReportExporter:
    return _exporter


class FlagUpdate(BaseModel):
    value: bool


class CaptionUpdate(BaseModel):
    caption: str


@app.exception_handler(FsrError)
async def fsr_error_handler(request: Request, exc: FsrError):
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    logger.warning(f"{request.method} {request.url.path} failed ({status}): {exc}")
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Record -------------------------------------------------------------

@app.get("/record")
def read_record(store: FormStore = Depends(get_store)):
    return store.record.to_document()


@app.delete("/record")
def reset_record(store: FormStore = Depends(get_store)):
    return store.reset().to_document()


@app.patch("/record/{section}")
def update_section(section: str, changes: Dict[str, Any] = Body(...), store: FormStore = Depends(get_store)):
    return store.update(section, changes).to_document()


@app.put("/record/job-types/{key}")
def set_job_type(key: str, req: FlagUpdate, store: FormStore = Depends(get_store)):
    return store.set_job_type(key, req.value).to_document()


@app.put("/record/service-types/{key}")
def set_service_type(key: str, req: FlagUpdate, store: FormStore = Depends(get_store)):
    return store.set_service_type(key, req.value).to_document()


@app.post("/record/parts")
def add_part(fields: Dict[str, Any] = Body(default={}), store: FormStore = Depends(get_store)):
    return store.add_part(**fields).to_document()


@app.patch("/record/parts/{index}")
def update_part(index: int, changes: Dict[str, Any] = Body(...), store: FormStore = Depends(get_store)):
    try:
        return store.update_part(index, **changes).to_document()
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/record/parts/{index}")
def remove_part(index: int, store: FormStore = Depends(get_store)):
    try:
        return store.remove_part(index).to_document()
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Media --------------------------------------------------------------

@app.post("/record/logo")
def upload_logo(file: UploadFile = File(...), store: FormStore = Depends(get_store)):
    data_url = bytes_to_data_url(file.file.read(), file.filename)
    return store.set_logo(data_url).to_document()


@app.post("/record/signatures/{who}/image")
def upload_signature(who: str, file: UploadFile = File(...), store: FormStore = Depends(get_store)):
    data_url = bytes_to_data_url(file.file.read(), file.filename)
    return store.set_signature_image(who, data_url).to_document()


@app.post("/record/photos")
def upload_photos(files: List[UploadFile] = File(...), store: FormStore = Depends(get_store)):
    uploads = [(f.filename, f.file.read()) for f in files]
    data_urls, failed = convert_all(uploads, lambda item: bytes_to_data_url(item[1], item[0]))
    added = store.add_photos(data_urls)
    return {
        "added": [photo.model_dump(by_alias=True) for photo in added],
        "failed": [{"filename": item[0], "error": str(error)} for item, error in failed],
    }


@app.patch("/record/photos/{photo_id}")
def update_photo(photo_id: str, req: CaptionUpdate, store: FormStore = Depends(get_store)):
    try:
        return store.update_photo_caption(photo_id, req.caption).to_document()
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No photo with id {photo_id}")


@app.delete("/record/photos/{photo_id}")
def remove_photo(photo_id: str, store: FormStore = Depends(get_store)):
    try:
        return store.remove_photo(photo_id).to_document()
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No photo with id {photo_id}")


# --- Preview & export ---------------------------------------------------

@app.get("/preview", response_class=HTMLResponse)
def preview(store: FormStore = Depends(get_store)):
    return render_preview_html(store.record)


@app.get("/export/json")
def export_json(store: FormStore = Depends(get_store), exporter: ReportExporter = Depends(get_exporter)):
    return attachment(store.to_json(), "application/json", exporter.artifact_name(store.record, "json"))


@app.post("/import/json")
def import_json(file: UploadFile = File(...), store: FormStore = Depends(get_store)):
    return store.import_json(file.file.read()).to_document()


@app.post("/export/pdf")
def export_pdf(
    scale: int = Query(PDF_QUALITY),
    store: FormStore = Depends(get_store),
    exporter: ReportExporter = Depends(get_exporter),
):
    record = store.record.model_copy(deep=True)
    pdf_bytes = exporter.render_pdf(record, scale)
    return attachment(pdf_bytes, "application/pdf", exporter.artifact_name(record, "pdf"))


def _save_pdf(exporter: ReportExporter, record, scale: int):
    try:
        exporter.export_pdf(record, scale, claimed=True)
    except (FsrError, OSError) as e:
        logger.error(f"Background export of {record.fsr_no} failed: {e}")


@app.post("/export/pdf/save")
def save_pdf(
    background_tasks: BackgroundTasks,
    scale: int = Query(PDF_QUALITY),
    store: FormStore = Depends(get_store),
    exporter: ReportExporter = Depends(get_exporter),
):
    validate_scale_factor(scale)
    record = store.record.model_copy(deep=True)
    # Held until the background export finishes, so a second request gets 409
    exporter.claim()
    background_tasks.add_task(_save_pdf, exporter, record, scale)
    return {"message": f"PDF export started for {record.fsr_no}"}
