from fastapi import FastAPI, Request, Form, HTTPException, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from fastapi.staticfiles import StaticFiles
from pathlib import Path
import io
import logging

from config import get_settings
from errors import CardValidationError, EncodingError, ExportError
from models import ContactRecord, ImageFormat
from pipeline import EncodeExportPipeline
from utils import generate_vcard, safe_filename, suggest_filename

BASE_DIR = Path(__file__).resolve().parent
settings = get_settings()

logging.basicConfig(level=settings.log_level.upper(), format='%(asctime)s [%(levelname)s] %(message)s')

app = FastAPI(title="vCard QR Generator")

# Static files
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# Single current-symbol slot shared by the endpoints
pipeline = EncodeExportPipeline(box_size=settings.box_size, border=settings.border)


def contact_form(
    first_name: str = Form(""),
    last_name: str = Form(""),
    organization: str = Form(""),
    title: str = Form(""),
    email: str = Form(""),
    work_phone: str = Form(""),
    mobile_phone: str = Form(""),
    street: str = Form(""),
    city: str = Form(""),
    region: str = Form(""),
    postal_code: str = Form(""),
    country: str = Form(""),
    website: str = Form(""),
    notes: str = Form(""),
) -> ContactRecord:
    return ContactRecord(
        first_name=first_name,
        last_name=last_name,
        organization=organization,
        title=title,
        email=email,
        work_phone=work_phone,
        mobile_phone=mobile_phone,
        street=street,
        city=city,
        region=region,
        postal_code=postal_code,
        country=country,
        website=website,
        notes=notes,
    )


def build_document(record: ContactRecord) -> str:
    try:
        return generate_vcard(record)
    except CardValidationError as e:
        logging.warning(f"Rejected contact: {e}")
        raise HTTPException(status_code=422, detail={"message": "First and last name are required", "missing": e.missing})


@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(request, "index.html", {"state": pipeline.state.value})


# -------- vCard text endpoint --------
@app.post("/vcard", response_class=PlainTextResponse)
def vcard(record: ContactRecord = Depends(contact_form)):
    return PlainTextResponse(build_document(record), media_type="text/vcard")


# -------- Generate card endpoint --------
@app.post("/card")
def generate_card(record: ContactRecord = Depends(contact_form)):
    document = build_document(record)

    try:
        symbol = pipeline.generate(document)
        data = pipeline.render(ImageFormat.PNG, symbol)
    except EncodingError as e:
        raise HTTPException(status_code=413, detail=f"Failed to generate QR code: {e}")
    except ExportError as e:
        logging.exception("Rendering freshly generated QR code failed")
        raise HTTPException(status_code=500, detail=f"Failed to generate QR code: {e}")

    filename = suggest_filename(record)
    return StreamingResponse(
        io.BytesIO(data),
        media_type=ImageFormat.PNG.media_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# -------- Current QR code endpoints --------
@app.get("/qrcode")
def download_qrcode(filename: str = "qrcode.png"):
    image_format = ImageFormat.from_path(filename)
    try:
        data = pipeline.render(image_format)
    except ExportError as e:
        status = 409 if not pipeline.can_export else 500
        raise HTTPException(status_code=status, detail=str(e))

    return StreamingResponse(
        io.BytesIO(data),
        media_type=image_format.media_type,
        headers={"Content-Disposition": f'attachment; filename="{safe_filename(Path(filename).name)}"'},
    )


@app.post("/qrcode/save")
def save_qrcode(filename: str = Form(...)):
    name = Path(filename).name
    if name in ("", ".", ".."):
        raise HTTPException(status_code=400, detail="A file name is required")
    if not pipeline.can_export:
        raise HTTPException(status_code=409, detail="No QR code to save")

    try:
        settings.export_dir.mkdir(parents=True, exist_ok=True)
        result = pipeline.export(settings.export_dir / name)
    except (ExportError, OSError) as e:
        logging.exception("Saving QR code failed")
        raise HTTPException(status_code=500, detail=f"Failed to save QR code: {e}")

    return {"path": str(result.path), "format": result.image_format.value, "size": result.size}


@app.get("/qrcode/state")
def qrcode_state():
    return {"state": pipeline.state.value}


@app.delete("/qrcode")
def reset_qrcode():
    pipeline.reset()
    return {"state": pipeline.state.value}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
