"""
REST collaborator client.

Thin async wrapper over the school backend: student directory, question bank
and the bulk submit endpoint. Payloads are validated into boundary records
here; transport problems surface as NetworkFailure.
"""
import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from online_exam.config import settings
from online_exam.errors import MalformedResponse, NetworkFailure, SubmitRejected
from online_exam.schemas import DirectoryEntry, QuestionRow, SubmitPayload

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class BackendClient:
    """Async client for the school REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("⏱️ %s %s timed out: %s", method, path, e)
            raise NetworkFailure(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            logger.warning("⚠️ %s %s failed: %s", method, path, e)
            raise NetworkFailure(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        response = await self._request("GET", path, params=params)
        if response.is_error:
            raise NetworkFailure(
                f"GET {path} failed ({response.status_code})",
                status_code=response.status_code,
            )
        data = self._json(response)
        if data is None:
            raise MalformedResponse(f"GET {path} returned a non-JSON body")
        return data

    @staticmethod
    def _parse_rows(items: List[Any], model: Type[T], source: str) -> List[T]:
        """Validate every row; malformed rows are rejected instead of coerced."""
        parsed: List[T] = []
        dropped = 0
        for item in items:
            try:
                parsed.append(model.model_validate(item))
            except ValidationError as e:
                dropped += 1
                logger.debug("Rejected %s row %r: %s", source, item, e)
        if dropped:
            logger.warning("⚠️ Dropped %d malformed row(s) from %s", dropped, source)
        return parsed

    async def fetch_students(self) -> List[DirectoryEntry]:
        path = settings.students_path
        data = await self._get_json(path)
        if not isinstance(data, list):
            raise MalformedResponse(f"GET {path} did not return a list")
        return self._parse_rows(data, DirectoryEntry, path)

    async def fetch_question_bank(self, exam_id: Optional[int] = None) -> List[QuestionRow]:
        """
        Fetch question-bank rows, optionally scoped by exam id.

        The endpoint answers with either a bare list or {"mcq_answers": [...]}.
        """
        path = settings.question_bank_path
        params = {"exam_id": exam_id} if exam_id is not None else None
        data = await self._get_json(path, params=params)
        if isinstance(data, dict):
            data = data.get("mcq_answers")
        if not isinstance(data, list):
            raise MalformedResponse(f"GET {path} did not return question rows")
        return self._parse_rows(data, QuestionRow, path)

    async def submit_answers(self, payload: SubmitPayload) -> Any:
        """
        Send the bulk save. Client errors come back as SubmitRejected with the
        body untouched; server errors are retryable NetworkFailures.
        """
        path = settings.submit_path
        response = await self._request("PATCH", path, json=payload.model_dump())
        body = self._json(response)
        if body is None and response.content:
            body = response.text
        if response.status_code >= 500:
            raise NetworkFailure(
                f"PATCH {path} failed ({response.status_code})",
                status_code=response.status_code,
            )
        if response.is_error:
            raise SubmitRejected(body, response.status_code)
        return body
