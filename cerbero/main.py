import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from cerbero import config
from cerbero.config import Settings
from cerbero.errors import Forbidden
from cerbero.logger_config import setup_logger
from cerbero.services.access_gate import AccessGate
from cerbero.services.delete_service import DeleteService
from cerbero.services.download_service import DownloadService
from cerbero.services.file_catalog import FileCatalog
from cerbero.services.path_guard import PathGuard
from cerbero.services.rate_governor import RateGovernor
from cerbero.services.storage_manager import StorageManager
from cerbero.services.upload_pipeline import UploadPipeline, client_host

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def _form_text(value) -> str:
    # A file part sent under a text field name counts as empty
    return value if isinstance(value, str) else ""


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Cannot create the shared directory: let it raise, the server must not start
    await app.state.storage_manager.initialize()
    yield


def create_app(settings: Settings) -> FastAPI:
    """Build the application with every component wired from ``settings``."""
    guard = PathGuard(settings.root_dir, reserved=(config.TEMP_DIR_NAME,))
    gate = AccessGate(settings.password)
    storage = StorageManager(settings.root_dir)

    app = FastAPI(title="Cerbero", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage_manager = storage
    app.state.file_catalog = FileCatalog(settings.root_dir)
    app.state.upload_pipeline = UploadPipeline(
        settings,
        RateGovernor(settings.rate_limit_interval),
        gate,
        guard,
        storage,
    )
    app.state.download_service = DownloadService(guard)
    app.state.delete_service = DeleteService(settings.delete_enabled, gate, guard, storage)

    @app.get("/")
    def index(request: Request):
        """Render the listing of shared files."""
        files = request.app.state.file_catalog.list()
        return templates.TemplateResponse(request, "index.html", {
            "files": files,
            "delete_enabled": settings.delete_enabled,
            "password_enabled": settings.password_enabled,
        })

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.post("/upload")
    async def upload_file(request: Request):
        """Store one multipart ``file`` field, gated by ``password`` when configured."""
        await request.app.state.upload_pipeline.handle_upload(request)
        return RedirectResponse("/", status_code=303)

    @app.get("/download/{rel_path:path}")
    async def download_file(rel_path: str, request: Request):
        logger.info(f"Receiving download request for {rel_path} from {client_host(request)}")
        return await request.app.state.download_service.handle_download(rel_path)

    @app.post("/delete")
    async def delete_file(request: Request):
        """Delete the file named by the ``path`` form field.

        Always redirects back to the listing, except when deleting is switched
        off altogether.
        """
        # Checked here as well as in DeleteService so a disabled server never parses the body
        if not settings.delete_enabled:
            raise Forbidden("Deleting is disabled")

        form = None
        try:
            form = await request.form(max_files=0, max_fields=config.DELETE_MAX_FIELDS)
            await request.app.state.delete_service.handle_delete(
                _form_text(form.get("path")),
                _form_text(form.get("password")),
            )
        except HTTPException as e:
            # Unparseable forms and refused deletes alike go back to the listing
            logger.warning(f"Delete request from {client_host(request)} failed: {e.detail}")
        except (MultiPartException, ValueError) as e:
            logger.warning(f"Unparseable delete request from {client_host(request)}: {e}")
        finally:
            if form is not None:
                await form.close()
        return RedirectResponse("/", status_code=303)

    return app


def main(argv: Optional[List[str]] = None):
    settings = Settings.from_args(argv)
    setup_logger(settings.logs_dir)

    logger.info("Starting Cerbero file server...")
    logger.info(f"Shared directory: {settings.root_dir}")
    logger.info(f"Listening on: http://{settings.host}:{settings.port}")
    logger.info(f"Maximum upload size: {settings.max_upload_mb} MB")
    if settings.password_enabled:
        logger.info("Mode: PRIVATE (password required for uploads and deletes)")
    else:
        logger.info("Mode: PUBLIC (no password)")
    logger.info(f"Deleting files: {'enabled' if settings.delete_enabled else 'disabled'}")

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
