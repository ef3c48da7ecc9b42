import io

import pytest
from PIL import Image

from errors import EncodingError, ExportError
from models import ContactRecord, ImageFormat, PipelineState
from pipeline import EncodeExportPipeline
from utils import generate_vcard

ADA = generate_vcard(ContactRecord(first_name="Ada", last_name="Lovelace", email="a@b.com"))


@pytest.fixture
def pipeline():
    return EncodeExportPipeline(box_size=4, border=2)


def test_starts_empty(pipeline):
    assert pipeline.state is PipelineState.EMPTY
    assert pipeline.symbol is None
    assert not pipeline.can_export


def test_generate_holds_symbol(pipeline):
    symbol = pipeline.generate(ADA)
    assert pipeline.state is PipelineState.GENERATED
    assert pipeline.can_export
    assert pipeline.symbol is symbol
    assert symbol.document == ADA
    assert symbol.error_correction == "Q"
    width, height = symbol.size
    assert width == height
    # modules * box_size, quiet zone included
    assert width == (symbol.version * 4 + 17 + 2 * 2) * 4


def test_generate_is_deterministic(pipeline):
    first = pipeline.generate(ADA)
    second = EncodeExportPipeline(box_size=4, border=2).generate(ADA)
    assert first.image.tobytes() == second.image.tobytes()


def test_regenerate_replaces_symbol(pipeline):
    first = pipeline.generate(ADA)
    other = generate_vcard(ContactRecord(first_name="Grace", last_name="Hopper"))
    second = pipeline.generate(other)
    assert pipeline.symbol is second
    assert second is not first
    assert pipeline.state is PipelineState.GENERATED


def test_oversized_payload_raises_encoding_error(pipeline):
    big = generate_vcard(ContactRecord(first_name="Ada", last_name="Lovelace", notes="x" * 3000))
    with pytest.raises(EncodingError):
        pipeline.generate(big)
    assert pipeline.state is PipelineState.EMPTY


def test_failed_generate_keeps_previous_symbol(pipeline):
    symbol = pipeline.generate(ADA)
    big = generate_vcard(ContactRecord(first_name="Ada", last_name="Lovelace", notes="x" * 3000))
    with pytest.raises(EncodingError):
        pipeline.generate(big)
    assert pipeline.symbol is symbol
    assert pipeline.state is PipelineState.GENERATED


def test_empty_document_rejected(pipeline):
    with pytest.raises(EncodingError):
        pipeline.generate("")


def test_export_before_generate_fails(pipeline, tmp_path):
    with pytest.raises(ExportError):
        pipeline.export(tmp_path / "card.png")
    assert not (tmp_path / "card.png").exists()


@pytest.mark.parametrize("name, expected", [
    ("card.png", ImageFormat.PNG),
    ("card.jpg", ImageFormat.JPEG),
    ("card.JPEG", ImageFormat.JPEG),
    ("card.bmp", ImageFormat.BMP),
    ("card.xyz", ImageFormat.PNG),
    ("card", ImageFormat.PNG),
    (".jpeg", ImageFormat.JPEG),
    (".bmp", ImageFormat.BMP),
])
def test_export_format_from_extension(pipeline, tmp_path, name, expected):
    pipeline.generate(ADA)
    result = pipeline.export(tmp_path / name)
    assert result.image_format is expected
    assert result.path == tmp_path / name
    assert result.size == (tmp_path / name).stat().st_size
    with Image.open(tmp_path / name) as img:
        assert img.format == expected.value
        assert img.size == pipeline.symbol.size


def test_export_explicit_format_wins(pipeline, tmp_path):
    pipeline.generate(ADA)
    result = pipeline.export(tmp_path / "card.png", ImageFormat.BMP)
    assert result.image_format is ImageFormat.BMP
    with Image.open(tmp_path / "card.png") as img:
        assert img.format == "BMP"


def test_export_does_not_change_state(pipeline, tmp_path):
    symbol = pipeline.generate(ADA)
    pipeline.export(tmp_path / "a.png")
    pipeline.export(tmp_path / "b.jpg")
    assert pipeline.symbol is symbol
    assert pipeline.state is PipelineState.GENERATED


def test_export_to_unwritable_destination(pipeline, tmp_path):
    symbol = pipeline.generate(ADA)
    with pytest.raises(ExportError):
        pipeline.export(tmp_path / "missing" / "card.png")
    assert pipeline.symbol is symbol


def test_render_returns_container_bytes(pipeline):
    pipeline.generate(ADA)
    data = pipeline.render(ImageFormat.JPEG)
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"


def test_reset_returns_to_empty(pipeline, tmp_path):
    pipeline.generate(ADA)
    pipeline.reset()
    assert pipeline.state is PipelineState.EMPTY
    assert pipeline.symbol is None
    with pytest.raises(ExportError):
        pipeline.export(tmp_path / "card.png")
    pipeline.generate(ADA)
    assert pipeline.export(tmp_path / "card.png").size > 0


def test_codec_failure_leaves_no_file(pipeline, tmp_path, monkeypatch):
    symbol = pipeline.generate(ADA)

    def broken_save(*args, **kwargs):
        raise OSError("encoder exploded")

    monkeypatch.setattr(symbol.image, "save", broken_save)
    with pytest.raises(ExportError):
        pipeline.export(tmp_path / "card.png")
    assert not (tmp_path / "card.png").exists()
    assert pipeline.symbol is symbol
    assert pipeline.state is PipelineState.GENERATED


def test_render_given_symbol_ignores_held_one(pipeline):
    ada = pipeline.generate(ADA)
    pipeline.generate(generate_vcard(ContactRecord(first_name="Grace", last_name="Hopper")))
    data = pipeline.render(ImageFormat.PNG, ada)
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == ada.size
        assert img.tobytes() == ada.image.tobytes()
    pipeline.reset()
    assert pipeline.render(ImageFormat.PNG, ada) == data
