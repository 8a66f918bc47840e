"""
AI explainer: answers questions about space phenomena and the dashboard.
Uses the OpenRouter chat completions endpoint.
"""

import logging
from typing import Optional

import httpx

from ..errors import ConfigurationError, InputValidationError, SourceError

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "deepseek/deepseek-chat"
EXPLAINER_SOURCE = "OpenRouter"

SYSTEM_PROMPT = """
You are Cosmo, the friendly and knowledgeable AI assistant for Cosmofy.
Cosmofy is a portal to the cosmos. Its mission is to make space exploration accessible and exciting for everyone.

Key features of Cosmofy include:
- Space Weather Center: solar flares, Coronal Mass Ejections (CMEs), geomagnetic storms and other solar phenomena.
- Space Disaster Watch: Near-Earth Objects (NEOs), high-speed solar wind streams and DONKI alerts.
- Live Spacecraft Tracking: active missions such as the ISS and Hubble, with TLE data and pass predictions.
- Event Calendar: launches, meteor showers, eclipses and satellite passes tailored to the user's location.

When asked about Cosmofy, answer from the list above.
For general space questions, answer clearly, concisely and in a friendly manner suitable for a general audience.
Use markdown where it helps (lists, bold key terms). Ask for clarification if a question is ambiguous.
Do not mention the underlying model or provider. You are Cosmo, part of Cosmofy.
""".strip()


class SpaceExplainer:
    """Single question in, single answer out."""

    def __init__(self, api_key: Optional[str], model: str = DEFAULT_MODEL,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0):
        self.api_key = api_key
        self.model = model
        self.client = client
        self.timeout = timeout

    async def explain(self, question: str) -> str:
        """
        Ask the language model a question.

        Args:
            question: Free-form user question

        Returns:
            The model's answer, stripped

        Raises:
            InputValidationError: empty question (no request is made)
            ConfigurationError: OPENROUTER_API_KEY missing
            SourceError: transport failure, non-2xx status or unexpected payload
        """
        if not question or not question.strip():
            raise InputValidationError("question must not be empty")
        if not self.api_key:
            raise ConfigurationError(EXPLAINER_SOURCE, "OPENROUTER_API_KEY is not set", "AI Explainer")

        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': question.strip()},
            ],
        }
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'HTTP-Referer': 'https://cosmofy.app',
            'X-Title': 'Cosmofy AI Assistant',
        }

        client = self.client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.post(OPENROUTER_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Error calling OpenRouter API: {str(e)}")
            raise SourceError(EXPLAINER_SOURCE, f"network error: {e}", "AI Explainer") from e
        finally:
            if self.client is None:
                await client.aclose()

        if response.status_code != 200:
            logger.error(f"OpenRouter API error: {response.status_code} - {response.text[:200]}")
            raise SourceError(EXPLAINER_SOURCE,
                              f"request failed with status {response.status_code}: {response.text[:200]}",
                              "AI Explainer")

        try:
            answer = response.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected OpenRouter response structure: {response.text[:200]}")
            raise SourceError(EXPLAINER_SOURCE, "no answer in response", "AI Explainer") from e
        if not answer or not str(answer).strip():
            raise SourceError(EXPLAINER_SOURCE, "empty answer in response", "AI Explainer")
        return str(answer).strip()
