import re

from errors import CardValidationError
from models import ContactRecord, ImageFormat, is_blank

LINE_TERMINATOR = "\r\n"

# Order matters: backslash first so later escapes are not doubled.
_ESCAPES = (
    ("\\", "\\\\"),
    ("\n", "\\n"),
    ("\r", ""),
    (",", "\\,"),
    (";", "\\;"),
)
_UNESCAPES = {"\\": "\\", "n": "\n", "N": "\n", ",": ",", ";": ";"}


def escape_text(value: str) -> str:
    for old, new in _ESCAPES:
        value = value.replace(old, new)
    return value


def unescape_text(value: str) -> str:
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append(_UNESCAPES.get(nxt, "\\" + nxt))
    return "".join(out)


def generate_vcard(record: ContactRecord) -> str:
    """
    Build the vCard 3.0 document for a contact.

    Raises CardValidationError when first or last name is blank. Optional
    fields only produce a line when non-blank; only the note is escaped.
    """
    missing = [name for name in ("first_name", "last_name") if is_blank(getattr(record, name))]
    if missing:
        raise CardValidationError(missing)

    vcard = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{record.last_name};{record.first_name};;;",
        f"FN:{record.first_name} {record.last_name}",
    ]

    # Optional fields
    if not is_blank(record.organization):
        vcard.append(f"ORG:{record.organization}")
    if not is_blank(record.title):
        vcard.append(f"TITLE:{record.title}")
    if not is_blank(record.email):
        vcard.append(f"EMAIL:{record.email}")
    if not is_blank(record.work_phone):
        vcard.append(f"TEL;TYPE=WORK,VOICE:{record.work_phone}")
    if not is_blank(record.mobile_phone):
        vcard.append(f"TEL;TYPE=CELL:{record.mobile_phone}")
    if record.has_address:
        # PO box and extended address stay empty
        vcard.append(
            f"ADR;TYPE=WORK:;;{record.street};{record.city};{record.region};"
            f"{record.postal_code};{record.country}"
        )
    if not is_blank(record.website):
        vcard.append(f"URL:{record.website}")
    if not is_blank(record.notes):
        vcard.append(f"NOTE:{escape_text(record.notes)}")

    vcard.append("END:VCARD")
    return LINE_TERMINATOR.join(vcard)


def safe_filename(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", name)


def suggest_filename(record: ContactRecord, image_format: ImageFormat = ImageFormat.PNG) -> str:
    stem = f"QRCode_{record.first_name.strip()}_{record.last_name.strip()}"
    return safe_filename(stem) + image_format.extension
