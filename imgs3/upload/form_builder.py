"""
Multipart form construction for S3 presigned POST uploads.

The object store expects every policy field first, in the order the broker
issued them, followed by a single `file` part carrying the PNG bytes.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

import aiohttp

from .exceptions import ImageFormatError, SessionStateError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IMAGE_CONTENT_TYPE = "image/png"
FILE_FIELD = "file"


@dataclass(frozen=True)
class FormPart:
    """One part of a multipart/form-data body"""
    name: str
    body: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None

    @property
    def content_disposition(self) -> str:
        return f'form-data; name="{self.name}"'


class UploadForm:
    """Ordered multipart parts for one presigned POST"""

    def __init__(self, parts: List[FormPart]):
        self._parts = list(parts)
        self._released = False

    @property
    def parts(self) -> List[FormPart]:
        return list(self._parts)

    @property
    def released(self) -> bool:
        return self._released

    @property
    def image_size(self) -> int:
        return len(self._parts[-1].body) if self._parts else 0

    def __len__(self) -> int:
        return len(self._parts)

    def to_form_data(self) -> aiohttp.FormData:
        """Render the parts as aiohttp form data, preserving order."""
        if self._released:
            raise SessionStateError("Upload form has already been released")

        data = aiohttp.FormData(quote_fields=False)
        for part in self._parts:
            if part.content_type:
                data.add_field(part.name, part.body, content_type=part.content_type, filename=part.filename)
            else:
                data.add_field(part.name, part.body.decode("utf-8"))
        return data

    def release(self) -> None:
        self._parts = []
        self._released = True


class MultipartUploadBuilder:
    """Builds the presigned POST body from credential fields and image bytes"""

    def __init__(self):
        self._form: Optional[UploadForm] = None

    @property
    def form(self) -> Optional[UploadForm]:
        return self._form

    def build(self, fields: Mapping[str, str], image: bytes) -> UploadForm:
        """Build one part per field, in iteration order, then the `file` part.

        The file part is always sent as image/png, so `image` must already be
        PNG encoded; anything else raises ImageFormatError before the previous
        form is released. Images are never re-encoded here.
        """
        if not image.startswith(PNG_SIGNATURE):
            raise ImageFormatError("Image data is not PNG encoded")

        self.release()

        parts = [FormPart(name=key, body=value.encode("utf-8")) for key, value in fields.items()]
        parts.append(FormPart(
            name=FILE_FIELD,
            body=bytes(image),
            content_type=IMAGE_CONTENT_TYPE,
            filename=FILE_FIELD
        ))

        self._form = UploadForm(parts)
        return self._form

    def release(self) -> None:
        """Drop the current form. Safe to call repeatedly."""
        form, self._form = self._form, None
        if form is not None:
            form.release()
