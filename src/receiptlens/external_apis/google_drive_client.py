import asyncio
import io
import logging
from typing import Optional

from google.oauth2 import service_account
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from receiptlens.exceptions import FetchFailure, StoreFailure

logger = logging.getLogger(__name__)

# Receipt images are uploaded by the mobile client, so drive.file is not enough
SCOPES = ["https://www.googleapis.com/auth/drive"]


def build_gdrive_service(credentials_path: Optional[str]) -> Optional[Resource]:
    """
    Authenticates and returns a Google Drive API service client.
    Meant to be called once at startup; returns None if Drive is not configured.
    """
    if not credentials_path:
        logger.error(
            "Google Drive credentials path is not configured. Cannot initialize GDrive service."
        )
        return None

    try:
        creds = service_account.Credentials.from_service_account_file(
            credentials_path, scopes=SCOPES
        )
        service = build("drive", "v3", credentials=creds, cache_discovery=False)
        logger.info("Google Drive API service initialized successfully.")
        return service
    except FileNotFoundError:
        logger.error(f"Google Drive credentials file not found at: {credentials_path}")
        return None
    except ValueError as e:
        logger.exception(f"Invalid Google Drive credentials in {credentials_path}: {e}")
        return None


class GoogleDriveBlobStore:
    """Blob store over a Drive folder. `bucket` is the folder id, `path` the file id."""

    def __init__(self, service: Resource):
        self._service = service

    def _download_sync(self, path: str) -> bytes:
        request = self._service.files().get_media(fileId=path)
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request)
        done = False
        while not done:
            _, done = downloader.next_chunk()
        return buffer.getvalue()

    async def download(self, bucket: str, path: str) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            # The Drive client is synchronous; keep it off the event loop
            content = await loop.run_in_executor(None, self._download_sync, path)
        except (HttpError, OSError) as error:
            raise FetchFailure(f"Failed to download {path} from {bucket}: {error}") from error
        logger.info(f"Image downloaded: {path} ({len(content)} bytes)")
        return content

    async def delete(self, bucket: str, path: str) -> None:
        loop = asyncio.get_running_loop()
        request = self._service.files().delete(fileId=path)
        try:
            await loop.run_in_executor(None, request.execute)
        except HttpError as error:
            raise StoreFailure(f"Failed to delete {path} from {bucket}: {error}") from error
        logger.info(f"Image deleted: {path}")
