# ingest/dify_client.py
import logging
import mimetypes
import os
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)

ALLOWED_TYPES = ("image/jpeg", "image/png", "image/jpg", "application/pdf")
RETRY_STATUS = (503, 504)


class RecognitionError(RuntimeError):
    """Recognition service call failed or returned nothing usable"""


class UnsupportedFileType(ValueError):
    """Uploaded file is not a JPEG, PNG or PDF"""


class RetryableError(RecognitionError):
    pass


def guess_content_type(filename: str, content_type: Optional[str] = None) -> str:
    """Validate and resolve the MIME type of an uploaded document"""
    resolved = content_type
    if resolved not in ALLOWED_TYPES:
        # browsers and CLIs often send application/octet-stream
        resolved = mimetypes.guess_type(filename)[0] or content_type or ""
    if resolved not in ALLOWED_TYPES:
        raise UnsupportedFileType(
            f"Unsupported file type for {filename}: {resolved or 'unknown'} "
            f"(expected JPEG, PNG or PDF)"
        )
    return resolved


class DifyClient:
    """
    Two-step recognition call: upload the document, then ask the chat app
    to return the record's content as JSON. Each attempt covers both steps.
    """

    def __init__(self, api_key: str, base_url: str = "https://api.dify.ai/v1",
                 user: str = "medical-recognition-system",
                 query: str = "请识别这张医疗记录图片中的所有信息，以JSON格式返回结构化数据",
                 timeout: float = 60.0, max_retries: int = 3,
                 backoff_seconds: float = 2.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.query = query
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings):
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            user=settings.user,
            query=settings.query,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            backoff_seconds=settings.backoff_seconds,
        )

    @property
    def headers(self):
        return {"Authorization": f"Bearer {self.api_key}"}

    def _check(self, resp: requests.Response, step: str, attempt: int):
        if resp.status_code in (200, 201):
            return
        logger.error(f"{step} failed (attempt {attempt}/{self.max_retries}): "
                     f"{resp.status_code} {resp.text}")
        if resp.status_code in RETRY_STATUS:
            raise RetryableError(f"{step} failed: {resp.status_code} {resp.text}")
        raise RecognitionError(f"{step} failed: {resp.status_code} {resp.text}")

    def upload_file(self, filename: str, content: bytes, content_type: str, attempt: int = 1) -> str:
        resp = self.session.post(
            f"{self.base_url}/files/upload",
            headers=self.headers,
            files={"file": (filename, content, content_type)},
            data={"user": self.user},
            timeout=self.timeout,
        )
        self._check(resp, "File upload", attempt)
        file_id = resp.json().get("id")
        if not file_id:
            raise RecognitionError("File upload returned no file id")
        logger.info(f"Uploaded {filename} as {file_id}")
        return file_id

    def ask(self, file_id: str, attempt: int = 1) -> str:
        resp = self.session.post(
            f"{self.base_url}/chat-messages",
            headers={**self.headers, "Content-Type": "application/json"},
            json={
                "inputs": {},
                "query": self.query,
                "user": self.user,
                "conversation_id": "",
                "files": [{
                    "type": "image",
                    "transfer_method": "local_file",
                    "upload_file_id": file_id,
                }],
                "response_mode": "blocking",
            },
            timeout=self.timeout,
        )
        self._check(resp, "Chat request", attempt)
        answer = resp.json().get("answer")
        if not answer:
            raise RecognitionError("Recognition returned no answer")
        return answer

    def recognize(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Return the raw answer text for one document"""
        if not self.api_key:
            raise RecognitionError("DIFY_API_KEY is not set")
        content_type = guess_content_type(filename, content_type)

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            logger.info(f"Recognition attempt {attempt}/{self.max_retries} for {filename}")
            try:
                file_id = self.upload_file(filename, content, content_type, attempt)
                return self.ask(file_id, attempt)
            except (RetryableError, requests.exceptions.Timeout,
                    requests.exceptions.ConnectionError) as e:
                last_error = e
                logger.warning(f"Attempt {attempt} failed: {e}")
                if attempt < self.max_retries:
                    delay = attempt * self.backoff_seconds
                    logger.info(f"Retrying in {delay}s")
                    time.sleep(delay)
            except requests.exceptions.RequestException as e:
                logger.error(f"Network error calling recognition service: {e}")
                raise RecognitionError(f"Recognition request failed: {e}") from e

        raise RecognitionError(
            f"Recognition failed after {self.max_retries} attempts: {last_error}"
        )

    def recognize_path(self, path: str) -> str:
        with open(path, "rb") as f:
            content = f.read()
        return self.recognize(os.path.basename(path), content)
