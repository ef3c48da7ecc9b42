from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from PIL import Image
from pydantic import BaseModel, ConfigDict, field_validator

ADDRESS_FIELDS = ("street", "city", "region", "postal_code", "country")


def is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


class ContactRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str = ""
    last_name: str = ""
    organization: str = ""
    title: str = ""
    email: str = ""
    work_phone: str = ""
    mobile_phone: str = ""
    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    website: str = ""
    notes: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return "" if value is None else value

    @property
    def has_address(self) -> bool:
        return any(not is_blank(getattr(self, name)) for name in ADDRESS_FIELDS)


class ImageFormat(str, Enum):
    PNG = "PNG"
    JPEG = "JPEG"
    BMP = "BMP"

    @property
    def media_type(self) -> str:
        return {"PNG": "image/png", "JPEG": "image/jpeg", "BMP": "image/bmp"}[self.value]

    @property
    def extension(self) -> str:
        return {"PNG": ".png", "JPEG": ".jpg", "BMP": ".bmp"}[self.value]

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImageFormat":
        """Pick the container from the file extension, PNG when unrecognized."""
        path = Path(path)
        suffix = path.suffix.lower()
        if not suffix and path.name.startswith("."):
            # ".jpeg" has no stem, the whole name is the extension
            suffix = path.name.lower()
        if suffix in (".jpg", ".jpeg"):
            return cls.JPEG
        if suffix == ".bmp":
            return cls.BMP
        return cls.PNG


class PipelineState(Enum):
    EMPTY = "empty"
    GENERATED = "generated"


@dataclass(frozen=True)
class EncodedSymbol:
    image: Image.Image
    document: str
    version: int
    error_correction: str = "Q"

    @property
    def size(self):
        return self.image.size


@dataclass(frozen=True)
class ExportResult:
    path: Path
    image_format: ImageFormat
    size: int
