import mimetypes
import os
import uuid as uuid_mod
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.models.pill import Pill
from app.schemas.pill import COLOURS, DRUG_CLASSES, SHAPES, PillResponse
from app.services.image_validator import validate_image
from app.utils.exceptions import AppException, NotFound
from app.utils.response import success_response

router = APIRouter(prefix="/pills", tags=["pills"])


def _image_dir() -> str:
    return os.path.join(settings.data_dir, "pill-images")


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


@router.get("")
async def list_pills(
    q: str | None = None,
    shape: str | None = None,
    colour: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    query = select(Pill).order_by(Pill.created_at.desc())
    if q and q.strip():
        needle = q.strip().lower()
        query = query.where(or_(
            func.lower(Pill.generic_name).contains(needle),
            func.lower(Pill.drug_class).contains(needle),
            func.lower(Pill.dosage).contains(needle),
        ))
    if shape:
        query = query.where(Pill.shape == shape)
    if colour:
        query = query.where(Pill.colour == colour)

    result = await db.execute(query)
    data = [PillResponse.from_model(p).model_dump() for p in result.scalars().all()]
    return success_response(data=data)


@router.get("/options")
async def pill_options():
    return success_response(data={"shapes": SHAPES, "colours": COLOURS, "drug_classes": DRUG_CLASSES})


@router.post("", status_code=201)
async def create_pill(
    generic_name: str = Form(default=""),
    drug_class: str | None = Form(default=None),
    colour: str | None = Form(default=None),
    size: str | None = Form(default=None),
    shape: str | None = Form(default=None),
    dosage: str | None = Form(default=None),
    uses: str | None = Form(default=None),
    description: str | None = Form(default=None),
    warnings: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
):
    if not generic_name.strip():
        raise AppException("Generic name is required", status_code=400)

    pill_id = str(uuid_mod.uuid4())

    image_path = None
    if image is not None and image.filename:
        content = await image.read()
        mime = validate_image(image.filename, image.content_type, len(content))

        ext = mimetypes.guess_extension(mime) or os.path.splitext(image.filename)[1] or ".img"
        os.makedirs(_image_dir(), exist_ok=True)
        image_path = os.path.join(_image_dir(), f"{pill_id}{ext}")
        with open(image_path, "wb") as f:
            f.write(content)

    pill = Pill(
        id=pill_id,
        generic_name=generic_name.strip(),
        drug_class=_blank_to_none(drug_class),
        colour=_blank_to_none(colour),
        size=_blank_to_none(size),
        shape=_blank_to_none(shape),
        dosage=_blank_to_none(dosage),
        uses=_blank_to_none(uses),
        description=_blank_to_none(description),
        warnings=_blank_to_none(warnings),
        image_path=image_path,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    db.add(pill)
    try:
        await db.commit()
    except SQLAlchemyError:
        if image_path and os.path.exists(image_path):
            os.remove(image_path)
        raise

    return success_response(data=PillResponse.from_model(pill).model_dump())


@router.get("/{pill_id}")
async def get_pill(pill_id: str, db: AsyncSession = Depends(get_db)):
    pill = await db.get(Pill, pill_id)
    if not pill:
        raise NotFound("Pill not found")
    return success_response(data=PillResponse.from_model(pill).model_dump())


@router.get("/{pill_id}/image")
async def get_pill_image(pill_id: str, db: AsyncSession = Depends(get_db)):
    pill = await db.get(Pill, pill_id)
    if not pill or not pill.image_path or not os.path.exists(pill.image_path):
        raise NotFound("Pill image not found")
    return FileResponse(pill.image_path)
