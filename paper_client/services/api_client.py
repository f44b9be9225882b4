"""
Backend API Client
Async HTTP client for the question-paper backend (syllabi, generation, answer keys, PDFs).
"""
import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from paper_client.config import DEFAULT_PAGE_LIMIT, get_api_url, get_timeout
from paper_client.errors import DeleteError, FetchError
from paper_client.schemas import (
    AnswerKey,
    GenerationRequest,
    Page,
    QuestionPaper,
    Syllabus,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FALLBACK_MESSAGE = "An unexpected error occurred"


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """
    Pull a human-readable message out of an error response.

    Prefers the body's `detail`, then `message`, then `fallback`.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("detail", "message"):
            value = body.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return fallback or FALLBACK_MESSAGE


class PaperServiceClient:
    """
    Thin async wrapper over the backend REST API.

    Every failure surfaces as FetchError (DeleteError for deletes) carrying
    the backend's own message.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or get_api_url(),
            timeout=timeout if timeout is not None else get_timeout(),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "PaperServiceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[FetchError] = FetchError,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = extract_error_message(e.response, str(e))
            logger.error("API Error: %s %s -> %s", method, path, message)
            raise error_cls(message, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            message = str(e) or FALLBACK_MESSAGE
            logger.error("API Error: %s %s -> %s", method, path, message)
            raise error_cls(message) from e
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise FetchError("Invalid JSON in server response", status_code=response.status_code) from e

    @staticmethod
    def _confirmation(response: httpx.Response) -> dict:
        """Body of a successful delete; any non-JSON or non-object body still counts as confirmed."""
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _parse(self, model: Type[ModelT], response: httpx.Response) -> ModelT:
        try:
            return model.model_validate(self._json(response))
        except ValidationError as e:
            raise FetchError(f"Unexpected {model.__name__} payload: {e}") from e

    def _parse_page(self, model: Type[ModelT], response: httpx.Response, skip: int, limit: int) -> Page[ModelT]:
        payload = self._json(response)
        if payload is None:
            payload = []
        if isinstance(payload, dict):
            payload = payload.get("items") or []
        try:
            items = [model.model_validate(item) for item in payload]
        except (ValidationError, TypeError) as e:
            raise FetchError(f"Unexpected {model.__name__} list payload: {e}") from e
        return Page[model](items=items, total=len(items), skip=skip, limit=limit)

    # --- Question papers ---

    async def generate_paper(self, request: GenerationRequest) -> QuestionPaper:
        response = await self._request(
            "POST", "/question-paper/generate", json=request.model_dump(mode="json")
        )
        return self._parse(QuestionPaper, response)

    async def get_paper(self, paper_id: str) -> QuestionPaper:
        response = await self._request("GET", f"/question-paper/{paper_id}")
        return self._parse(QuestionPaper, response)

    async def get_answer_key(self, paper_id: str) -> AnswerKey:
        response = await self._request("GET", f"/question-paper/{paper_id}/answer-key")
        return self._parse(AnswerKey, response)

    async def list_papers(
        self,
        syllabus_id: Optional[str] = None,
        skip: int = 0,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> Page[QuestionPaper]:
        params: dict[str, Any] = {"skip": skip, "limit": limit}
        if syllabus_id is not None:
            params["syllabus_id"] = syllabus_id
        response = await self._request("GET", "/question-paper/", params=params)
        return self._parse_page(QuestionPaper, response, skip, limit)

    async def delete_paper(self, paper_id: str) -> dict:
        response = await self._request("DELETE", f"/question-paper/{paper_id}", error_cls=DeleteError)
        return self._confirmation(response)

    async def download_pdf(self, paper_id: str, include_answers: bool = False) -> bytes:
        """Fetch the backend-rendered PDF. The bytes are passed through untouched."""
        response = await self._request(
            "GET",
            f"/question-paper/{paper_id}/pdf",
            params={"include_answers": include_answers},
            headers={"Accept": "application/pdf"},
        )
        return response.content

    # --- Syllabi ---

    async def list_syllabi(self, skip: int = 0, limit: int = DEFAULT_PAGE_LIMIT) -> Page[Syllabus]:
        response = await self._request("GET", "/syllabus/", params={"skip": skip, "limit": limit})
        return self._parse_page(Syllabus, response, skip, limit)

    async def get_syllabus(self, syllabus_id: str) -> Syllabus:
        response = await self._request("GET", f"/syllabus/{syllabus_id}")
        return self._parse(Syllabus, response)

    async def delete_syllabus(self, syllabus_id: str) -> dict:
        response = await self._request("DELETE", f"/syllabus/{syllabus_id}", error_cls=DeleteError)
        return self._confirmation(response)

    async def upload_syllabus_text(self, course_name: str, content: str) -> Syllabus:
        response = await self._request(
            "POST",
            "/syllabus/upload/text",
            json={"course_name": course_name, "content": content},
        )
        return self._parse(Syllabus, response)

    async def upload_syllabus_file(self, filename: str, content: bytes, course_name: str) -> Syllabus:
        response = await self._request(
            "POST",
            "/syllabus/upload/file",
            files={"file": (filename, content, "application/pdf")},
            data={"course_name": course_name},
        )
        return self._parse(Syllabus, response)
