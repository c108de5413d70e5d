"""
    02 gemini service

gemini_service.py

Sends one uploaded document to Gemini and returns the fields asked for by its
document type. Models are tried in priority order; each model gets a few
attempts when the failure looks temporary (quota, rate limit, overload) and is
skipped straight away on anything else.

Main entrypoint: GeminiExtractor(api_key).process_document(payload, doc_type)
"""

import functools
import json
import logging
import re
import sys
import time
from typing import Any, Callable, Dict, Optional, Tuple

from google import genai
from google.genai import errors, types
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from src.config import ExtractionSettings, get_api_key, get_log_level, get_report_year, load_settings
from src.document_payload import DocumentPayload, read_document
from src.extraction_prompts import ExtractionSpec, get_extraction_spec
from src.models import DocType

# Logging
logger = logging.getLogger("gemini_service")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(get_log_level())

GENERIC_FAILURE_MESSAGE = "Hệ thống đang quá tải. Tất cả các model AI đều không xử lý được tài liệu."

# 429 RESOURCE_EXHAUSTED, 503 UNAVAILABLE
TRANSIENT_STATUS_CODES = frozenset({429, 503})
_TRANSIENT_SIGNATURE_RE = re.compile(
    r"\b429\b|\b503\b|resource[_ ]exhausted|quota|rate[ -]?limit|too many requests|overloaded|service unavailable",
    re.I,
)

# (model_name, payload, spec) -> raw response text
ModelCaller = Callable[[str, DocumentPayload, ExtractionSpec], str]


class MissingApiKeyError(EnvironmentError):
    """No Gemini API key configured; raised before any request is made."""


class InvalidResponseError(ValueError):
    """The model answered, but not with a usable JSON object."""


class EmptyResponseError(InvalidResponseError):
    pass


class AllModelsFailedError(RuntimeError):
    pass


def is_transient_error(error: BaseException) -> bool:
    """True for quota / rate-limit / overload errors that a later retry may clear."""
    if isinstance(error, InvalidResponseError):
        return False
    if isinstance(error, errors.APIError):
        return error.code in TRANSIENT_STATUS_CODES
    return bool(_TRANSIENT_SIGNATURE_RE.search(f"{type(error).__name__} {error}"))


def _clean_json_output(raw_text: Optional[str]) -> str:
    """
    Cleans Gemini output by removing markdown code fences (```json, ```),
    stripping whitespace, and ensuring only valid JSON remains.
    """
    if not raw_text or not raw_text.strip():
        raise EmptyResponseError("Model returned empty response.")

    cleaned = re.sub(r"^```(?:json)?|```$", "", raw_text.strip(), flags=re.MULTILINE).strip()
    if not cleaned:
        raise EmptyResponseError("Model returned empty response.")
    return cleaned


def parse_model_response(raw_text: Optional[str], spec: ExtractionSpec) -> Dict[str, str]:
    """Parse the model text into {field: str} for the fields the document type asks for."""
    cleaned = _clean_json_output(raw_text)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        # Grounded answers sometimes wrap the object in prose
        m = re.search(r"\{.*\}", cleaned, re.S)
        if not m:
            raise InvalidResponseError(f"Model did not return valid JSON. Error: {e}")
        try:
            parsed = json.loads(m.group(0))
        except json.JSONDecodeError as e2:
            raise InvalidResponseError(f"Model did not return valid JSON. Error: {e2}")

    if isinstance(parsed, list) and len(parsed) == 1:
        parsed = parsed[0]
    if not isinstance(parsed, dict):
        raise InvalidResponseError(f"Expected a JSON object, got {type(parsed).__name__}")
    if not any(name in parsed for name in spec.field_names):
        raise InvalidResponseError(f"Response has none of the expected fields {list(spec.field_names)}")

    result = {}
    for name in spec.field_names:
        value = parsed.get(name)
        result[name] = "" if value is None else str(value).strip()
    return result


def build_generation_config(spec: ExtractionSpec) -> types.GenerateContentConfig:
    if spec.use_search:
        # Search grounding cannot be combined with a JSON response MIME type
        return types.GenerateContentConfig(
            temperature=0,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
    return types.GenerateContentConfig(
        temperature=0,
        response_mime_type="application/json",
        response_schema=spec.response_schema(),
    )


def call_gemini(client: genai.Client, model_name: str, payload: DocumentPayload, spec: ExtractionSpec) -> str:
    """One generate_content request against the given client."""
    response = client.models.generate_content(
        model=model_name,
        contents=[payload.to_part(), spec.full_prompt()],
        config=build_generation_config(spec),
    )
    return response.text.strip() if response and response.text else ""


class GeminiExtractor:
    """
    Multi-model extraction with retry.

    Args:
        api_key: Gemini API key; None or empty makes every call fail fast.
        settings: model priority list, retry bound and backoff schedule.
        report_year: VAT year used to word the prompts.
        call_model: replaces the real Gemini request (used by tests).
        sleep: replaces time.sleep (used by tests).
    """

    def __init__(
        self,
        api_key: Optional[str],
        settings: Optional[ExtractionSettings] = None,
        report_year: Optional[int] = None,
        call_model: Optional[ModelCaller] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.settings = settings or load_settings()
        self.report_year = report_year or get_report_year()
        self._call_model = call_model
        self._sleep = sleep

    def _resolve_caller(self) -> ModelCaller:
        if self._call_model is not None:
            return self._call_model
        return functools.partial(call_gemini, genai.Client(api_key=self.api_key))

    def process_document(self, payload: DocumentPayload, doc_type: DocType) -> Dict[str, str]:
        """
        Returns the parsed fields from the first model that answers with usable
        JSON. Raises the last error seen when every model fails, or
        AllModelsFailedError when there was nothing to try.
        """
        if not self.api_key:
            raise MissingApiKeyError(
                "GEMINI_API_KEY chưa được cấu hình. Vui lòng đặt biến môi trường GEMINI_API_KEY "
                "hoặc thêm vào .streamlit/secrets.toml."
            )

        spec = get_extraction_spec(doc_type, self.report_year)
        call = self._resolve_caller()
        models = self.settings.model_priority
        last_error: Optional[BaseException] = None

        for index, model_name in enumerate(models):
            result, error = self._try_model(call, model_name, payload, spec)
            if result is not None:
                return result
            if error is not None:
                last_error = error

            # Give a shared rate limit a moment before hitting the next model
            if index < len(models) - 1:
                self._sleep(self.settings.model_switch_delay)

        logger.error("All models exhausted for %s.", DocType(doc_type).value)
        if last_error is not None:
            raise last_error
        raise AllModelsFailedError(GENERIC_FAILURE_MESSAGE)

    def _retrying(self, model_name: str) -> Retrying:
        """Per-model retry: transient errors only, waits of 1x, 2x, ... backoff_seconds."""
        max_attempts = self.settings.max_attempts
        backoff = self.settings.backoff_seconds

        def log_attempt(retry_state: Any) -> None:
            logger.info(
                "Attempting with model: %s (attempt %d/%d)", model_name, retry_state.attempt_number, max_attempts
            )

        return Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_incrementing(start=backoff, increment=backoff),
            retry=retry_if_exception(is_transient_error),
            before=log_attempt,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

    def _try_model(
        self,
        call: ModelCaller,
        model_name: str,
        payload: DocumentPayload,
        spec: ExtractionSpec,
    ) -> Tuple[Optional[Dict[str, str]], Optional[BaseException]]:
        def attempt() -> Dict[str, str]:
            return parse_model_response(call(model_name, payload, spec), spec)

        try:
            result = self._retrying(model_name)(attempt)
        except Exception as e:
            logger.warning("Failed with %s, moving to next model: %s", model_name, e)
            return None, e

        logger.info("Success with %s", model_name)
        return result, None


def process_document(
    path_or_file: Any,
    doc_type: DocType,
    api_key: Optional[str] = None,
    settings: Optional[ExtractionSettings] = None,
) -> Dict[str, str]:
    """Read a file/upload and run it through GeminiExtractor in one call."""
    payload = read_document(path_or_file)
    if api_key is None:
        api_key = get_api_key()
    return GeminiExtractor(api_key, settings=settings).process_document(payload, doc_type)
