"""Upload handling as an ordered list of fallible stages.

The order is the contract: cheap rejections (rate limit, declared size)
come before the body is read, the body is fully and boundedly parsed before
the password is checked, and nothing touches the destination before the
password and the file name have both been accepted.
"""
import logging
import posixpath
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect

from cerbero import config
from cerbero.config import Settings
from cerbero.errors import BadUpload, PayloadTooLarge, TooManyRequests, Unauthorized
from cerbero.services.access_gate import AccessGate
from cerbero.services.path_guard import PathGuard
from cerbero.services.rate_governor import RateGovernor
from cerbero.services.storage_manager import StorageManager

logger = logging.getLogger(__name__)


def client_host(request: Request) -> str:
    """Client identity used for rate limiting: the remote host, without the port."""
    return request.client.host if request.client else "unknown"


def base_name(filename: str) -> str:
    # Browsers on Windows may send the full client-side path
    return posixpath.basename(filename.replace("\\", "/"))


class BoundedStream:
    """Passes chunks through until more than ``limit`` bytes were read.

    Past the limit it stops early and sets ``exceeded`` instead of raising,
    so the multipart parser finishes or fails on its own terms and the spooled
    parts get closed through the usual paths.
    """

    def __init__(self, stream: AsyncIterator[bytes], limit: int):
        self.stream = stream
        self.limit = limit
        self.exceeded = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        received = 0
        async for chunk in self.stream:
            received += len(chunk)
            if received > self.limit:
                self.exceeded = True
                return
            yield chunk


@dataclass
class UploadContext:
    request: Request
    client: str
    body: Optional[BoundedStream] = None
    form: Optional[FormData] = None
    upload: Optional[UploadFile] = None
    destination: Optional[str] = None
    size: int = 0


class UploadPipeline:
    def __init__(
        self,
        settings: Settings,
        governor: RateGovernor,
        gate: AccessGate,
        guard: PathGuard,
        storage: StorageManager,
    ):
        self.max_upload_bytes = settings.max_upload_bytes
        self.governor = governor
        self.gate = gate
        self.guard = guard
        self.storage = storage
        self.stages = (
            self.check_rate,
            self.bound_body,
            self.parse_form,
            self.check_password,
            self.resolve_destination,
            self.write_file,
        )

    async def handle_upload(self, request: Request) -> str:
        """Run every stage in order and return the path the file was stored at.

        The first stage to raise ends the request; later stages never run.
        """
        ctx = UploadContext(request=request, client=client_host(request))
        try:
            for stage in self.stages:
                await stage(ctx)
        finally:
            if ctx.form is not None:
                await ctx.form.close()

        logger.info(f"[UPLOAD] {posixpath.basename(ctx.destination)} ({ctx.size} bytes) uploaded from {ctx.client}")
        return ctx.destination

    async def check_rate(self, ctx: UploadContext) -> None:
        if not self.governor.admit(ctx.client):
            logger.warning(f"Rate limit hit by {ctx.client}")
            raise TooManyRequests("Too many requests (rate limit)")

    async def bound_body(self, ctx: UploadContext) -> None:
        declared = ctx.request.headers.get("content-length")
        if declared is not None:
            try:
                declared_size = int(declared)
            except ValueError:
                raise BadUpload("Invalid Content-Length header")
            if declared_size > self.max_upload_bytes:
                logger.warning(f"Upload from {ctx.client} declared {declared_size} bytes, over the limit")
                raise self._too_large()

        ctx.body = BoundedStream(ctx.request.stream(), self.max_upload_bytes)

    async def parse_form(self, ctx: UploadContext) -> None:
        content_type = ctx.request.headers.get("content-type", "")
        if not content_type.lower().startswith("multipart/form-data"):
            raise BadUpload("Expected a multipart/form-data upload")

        # Small fields stay in memory, the file part spools to a temporary file
        parser = MultiPartParser(ctx.request.headers, ctx.body)
        try:
            form = await parser.parse()
        except (MultiPartException, ValueError, KeyError) as e:
            if ctx.body.exceeded:
                raise self._too_large() from e
            logger.warning(f"Malformed upload from {ctx.client}: {e}")
            raise BadUpload("Could not process the upload (malformed body)") from e
        except ClientDisconnect as e:
            logger.warning(f"Client {ctx.client} disconnected during upload")
            raise BadUpload("Could not process the upload (connection closed)") from e

        if ctx.body.exceeded:
            # Truncated body that still parsed: drop the spooled parts before refusing
            await form.close()
            raise self._too_large()
        ctx.form = form

    def _too_large(self) -> PayloadTooLarge:
        return PayloadTooLarge(f"The upload exceeds the {self.max_upload_bytes >> 20} MB limit")

    async def check_password(self, ctx: UploadContext) -> None:
        password = ctx.form.get("password", "")
        if not isinstance(password, str):
            password = ""
        if not self.gate.verify(password):
            logger.warning(f"Upload with wrong password from {ctx.client}")
            raise Unauthorized("Wrong password")

    async def resolve_destination(self, ctx: UploadContext) -> None:
        upload = ctx.form.get("file")
        if not isinstance(upload, UploadFile) or not upload.filename:
            raise BadUpload("No file selected")

        ctx.upload = upload
        ctx.destination = self.guard.resolve(base_name(upload.filename))

    async def write_file(self, ctx: UploadContext) -> None:
        ctx.size = await self.storage.save_stream(ctx.upload, ctx.destination, config.CHUNK_SIZE)
