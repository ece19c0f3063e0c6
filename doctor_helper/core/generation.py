"""
Client for the generative model backend (Gemini REST API)
"""
import asyncio
import json
import re
import aiohttp
from typing import Optional, Dict, Any, List, AsyncIterator, Tuple
from doctor_helper.config import get_settings
import logging

settings = get_settings()
logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a medical AI assistant. Provide helpful, accurate medical information in a clear, "
    "well-formatted manner using markdown. Use headers (###), bullet points (*), numbered lists, "
    "and proper spacing to make information easy to read. The website already has appropriate "
    "disclaimers and legal notices, so do not include disclaimers about not being a doctor or "
    "seeking professional medical advice in your responses. Focus on providing direct, helpful "
    "medical information.\n\n"
    "IMPORTANT: When providing medical advice, recommendations, or health information, ALWAYS "
    "include relevant medical citations with the following format:\n"
    "- Site Name: [Name of medical website/institution]\n"
    "- URL: [Direct link to the source]\n\n"
    "Use reputable medical sources such as Mayo Clinic, CDC, NIH, medical journals, or other "
    "established healthcare institutions."
)

DATA_URL_PATTERN = re.compile(r"^data:(.*?);base64,(.*)$", re.DOTALL)


class GenerationError(Exception):
    """The generation backend failed or returned an unusable response"""


def parse_image_data_url(image: str) -> Tuple[str, str]:
    """Split a data URL into (mime_type, base64_data)"""
    match = DATA_URL_PATTERN.match(image or "")
    if not match:
        raise ValueError("Invalid image format.")
    return match.group(1), match.group(2)


def build_content_parts(
    message: Optional[str] = None,
    document: Optional[str] = None,
    health_report: Optional[Dict[str, Any]] = None,
    image: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Combine the user's message, attached document, report context and image into request parts"""
    text_content = message or ""

    if document:
        prefix = "\n\nDocument content:\n" if text_content else "Document content:\n"
        text_content += prefix + document

    if health_report:
        findings = ", ".join(health_report.get("keyFindings") or []) or "None"
        recommendations = ", ".join(health_report.get("recommendations") or []) or "None"
        health_context = (
            "Health Report Context:\n"
            f"- Title: {health_report.get('title')}\n"
            f"- Type: {health_report.get('reportType')}\n"
            f"- Risk Level: {health_report.get('riskLevel')}\n"
            f"- Summary: {health_report.get('summary')}\n"
            f"- Key Findings: {findings}\n"
            f"- Recommendations: {recommendations}\n\n"
            "The user is asking questions about this health report. Please provide helpful, accurate "
            "medical information based on the report analysis."
        )
        text_content = f"{text_content}\n\n{health_context}" if text_content else health_context

    parts: List[Dict[str, Any]] = []
    if text_content:
        parts.append({"text": text_content})

    if image:
        mime_type, data = parse_image_data_url(image)
        parts.append({"inlineData": {"mimeType": mime_type, "data": data}})

    return parts


def extract_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate"""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def format_stream_chunk(text: str) -> str:
    """Data-stream protocol line for a text chunk"""
    return f"0:{json.dumps(text)}\n"


class GenerationClient:
    """Thin async wrapper over generateContent / streamGenerateContent"""

    def __init__(
        self,
        api_key: str,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ):
        self.api_key = api_key
        self.api_url = (api_url or settings.GENERATION_API_URL).rstrip("/")
        self.model = model or settings.GENERATION_MODEL
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.GENERATION_TIMEOUT_SECONDS)

    def _build_request(self, parts: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": parts}],
            "systemInstruction": {"role": "system", "parts": [{"text": SYSTEM_INSTRUCTION}]},
        }

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise GenerationError("Server configuration error: missing generation API key")
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    async def generate(self, parts: List[Dict[str, Any]]) -> str:
        """Generate a full response"""
        url = f"{self.api_url}/models/{self.model}:generateContent"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=self._build_request(parts), headers=self._headers()) as response:
                    if response.status != 200:
                        body = await response.text()
                        logger.error(f"Generation backend returned {response.status}: {body[:500]}")
                        raise GenerationError(f"Generation backend returned {response.status}")
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Generation request failed: {e!r}")
            raise GenerationError("Generation request failed") from e

        return extract_text(payload)

    async def stream(self, parts: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """Yield text chunks as the backend produces them (server-sent events)"""
        url = f"{self.api_url}/models/{self.model}:streamGenerateContent?alt=sse"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=self._build_request(parts), headers=self._headers()) as response:
                    if response.status != 200:
                        body = await response.text()
                        logger.error(f"Generation backend returned {response.status}: {body[:500]}")
                        raise GenerationError(f"Generation backend returned {response.status}")

                    async for raw_line in response.content:
                        line = raw_line.decode("utf-8").strip()
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if not data:
                            continue
                        text = extract_text(json.loads(data))
                        if text:
                            yield text
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Generation stream failed: {e!r}")
            raise GenerationError("Generation stream failed") from e
