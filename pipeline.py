import io
import logging
from pathlib import Path
from typing import Optional, Union

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from errors import EncodingError, ExportError
from models import EncodedSymbol, ExportResult, ImageFormat, PipelineState


class EncodeExportPipeline:
    """
    Holds at most one QR symbol for the current vCard.

    EMPTY -> GENERATED on generate(), back to EMPTY on reset(). A failed
    generate() keeps whatever symbol was held before.
    """

    def __init__(self, box_size: int = 20, border: int = 4):
        self.box_size = box_size
        self.border = border
        self._symbol: Optional[EncodedSymbol] = None

    @property
    def symbol(self) -> Optional[EncodedSymbol]:
        return self._symbol

    @property
    def state(self) -> PipelineState:
        return PipelineState.EMPTY if self._symbol is None else PipelineState.GENERATED

    @property
    def can_export(self) -> bool:
        return self.state is PipelineState.GENERATED

    def generate(self, document: str) -> EncodedSymbol:
        if not document:
            raise EncodingError("Nothing to encode")

        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_Q,
            box_size=self.box_size,
            border=self.border,
        )
        try:
            qr.add_data(document)
            qr.make(fit=True)
            image = qr.make_image(fill_color="black", back_color="white").get_image()
        except (DataOverflowError, ValueError) as e:
            logging.warning(f"QR encoding rejected payload of {len(document)} chars: {e}")
            raise EncodingError(f"Payload too large for a QR code: {e}") from e

        if not isinstance(image, Image.Image) or image.size[0] == 0:
            raise EncodingError("QR encoder returned no usable image")

        self._symbol = EncodedSymbol(image=image, document=document, version=qr.version)
        logging.info(f"Generated QR version {qr.version} ({image.size[0]}x{image.size[1]} px)")
        return self._symbol

    def render(
        self,
        image_format: ImageFormat = ImageFormat.PNG,
        symbol: Optional[EncodedSymbol] = None,
    ) -> bytes:
        """Encode `symbol`, or the held one when not given, into the container format."""
        if symbol is None:
            symbol = self._symbol
        if symbol is None:
            raise ExportError("No QR code to export, generate one first")

        image = symbol.image
        if image_format is not ImageFormat.PNG and image.mode not in ("L", "RGB"):
            image = image.convert("L")

        buf = io.BytesIO()
        try:
            image.save(buf, format=image_format.value)
        except (OSError, ValueError) as e:
            raise ExportError(f"Could not encode image as {image_format.value}: {e}") from e
        return buf.getvalue()

    def export(
        self,
        destination: Union[str, Path],
        image_format: Optional[ImageFormat] = None,
    ) -> ExportResult:
        destination = Path(destination)
        if image_format is None:
            image_format = ImageFormat.from_path(destination)

        # Encode before opening so a codec failure never touches the file
        data = self.render(image_format)
        try:
            with open(destination, "wb") as f:
                f.write(data)
        except OSError as e:
            logging.warning(f"Saving QR code to {destination} failed: {e}")
            raise ExportError(f"Could not write {destination}: {e}") from e

        logging.info(f"Saved QR code to {destination} as {image_format.value}")
        return ExportResult(path=destination, image_format=image_format, size=len(data))

    def reset(self) -> None:
        self._symbol = None
        logging.info("QR code cleared")
