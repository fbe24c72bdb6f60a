"""Framework-neutral view of a multipart application form."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from fastapi import Request
from starlette.datastructures import UploadFile

from app.exceptions import SubmissionRejected

TOKEN_FIELD = "cf-turnstile-response"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes = b""
    # Size reported by the parser; set when the body was too large to keep.
    declared_size: int | None = None

    @property
    def size(self) -> int:
        return self.declared_size if self.declared_size is not None else len(self.data)


@dataclass
class FormPayload:
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, UploadedFile] = field(default_factory=dict)

    def text(self, name: str) -> str:
        return self.fields.get(name, "").strip()

    def file(self, name: str) -> UploadedFile | None:
        return self.files.get(name)


async def _read_capped(upload: UploadFile, max_bytes: int) -> UploadedFile:
    if upload.size is not None and upload.size > max_bytes:
        data = b""
    else:
        # one byte past the limit is enough to know it is too big
        data = await upload.read(max_bytes + 1)
    size = upload.size if upload.size is not None else len(data)
    if size > max_bytes:
        data = b""
    return UploadedFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        data=data,
        declared_size=size,
    )


async def parse_form(request: Request, *, max_bytes: int) -> FormPayload:
    """Read the request body into a :class:`FormPayload`.

    File bodies larger than ``max_bytes`` are never read into memory; only
    their size is kept so the attachment gate can reject them. Untouched
    file inputs arrive as parts with no filename and no bytes; they are
    treated as absent.
    """

    try:
        form = await request.form()
    except Exception as exc:
        raise SubmissionRejected("Invalid form data", detail=str(exc)) from exc

    payload = FormPayload()
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key in payload.files:
                    continue
                upload = await _read_capped(value, max_bytes)
                if not upload.filename and not upload.size:
                    continue
                payload.files[key] = upload
            else:
                payload.fields.setdefault(key, value)
    finally:
        await form.close()
    return payload


def client_ip(headers: Mapping[str, str]) -> str:
    """Best-effort source address of the applicant."""

    forwarded = headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return headers.get("cf-connecting-ip", "").strip()
