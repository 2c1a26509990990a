"""
Structured prompt invocation shared by every AI flow.
A flow validates its input, renders a prompt, asks the model for a JSON
object matching its output model, and falls back to a static answer when
the model gives nothing usable.
"""

import os
import re
import json
import logging
from typing import Optional, Callable, Union, Type, Any, Dict
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")

_default_client: Optional[AsyncOpenAI] = None

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def get_openai_client() -> Optional[AsyncOpenAI]:
    """Lazily build the shared OpenAI client, None when no API key is set"""
    global _default_client
    if _default_client is None and OPENAI_API_KEY:
        _default_client = AsyncOpenAI(api_key=OPENAI_API_KEY)
        logger.info("OpenAI client initialized")
    return _default_client


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one"""
    return _FENCE_RE.sub("", text.strip())


async def complete_text(prompt: str, client: Optional[AsyncOpenAI] = None) -> Optional[str]:
    """Single plain-text completion. Returns None when unavailable or on upstream error."""
    client = client or get_openai_client()
    if client is None:
        return None
    try:
        response = await client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": prompt}],
        )
    except OpenAIError as e:
        logger.error(f"OpenAI text completion failed: {e}")
        return None
    return (response.choices[0].message.content or "").strip()


class PromptFlow:
    """One AI operation: input model, prompt template, output model and fallback"""

    def __init__(
        self,
        name: str,
        input_model: Type[BaseModel],
        output_model: Type[BaseModel],
        template: Callable[[Any], str],
        fallback: Union[BaseModel, Callable[[Any], BaseModel], None] = None,
        is_empty: Optional[Callable[[Any, Any], bool]] = None,
        postprocess: Optional[Callable[[Any, Any], Any]] = None,
        image_field: Optional[str] = None,
    ):
        self.name = name
        self.input_model = input_model
        self.output_model = output_model
        self.template = template
        self.fallback = fallback
        self.is_empty = is_empty
        self.postprocess = postprocess
        self.image_field = image_field

    def validate_input(self, payload: Union[BaseModel, Dict[str, Any]]) -> BaseModel:
        # ValidationError propagates to the caller
        if isinstance(payload, self.input_model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        return self.input_model.model_validate(payload)

    def fallback_for(self, data: BaseModel) -> Optional[BaseModel]:
        if self.fallback is None:
            return None
        if isinstance(self.fallback, BaseModel):
            return self.fallback.model_copy(deep=True)
        return self.fallback(data)

    def build_messages(self, data: BaseModel) -> list:
        schema = json.dumps(self.output_model.model_json_schema())
        system = (
            "You are an expert assistant inside a NEET exam preparation app. "
            "Respond with a single JSON object that conforms to this JSON schema, "
            f"with no extra text:\n{schema}"
        )
        prompt = self.template(data)
        if self.image_field:
            user_content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": getattr(data, self.image_field)}},
            ]
        else:
            user_content = prompt
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user_content},
        ]

    async def invoke(self, data: BaseModel, client: Optional[AsyncOpenAI] = None) -> Optional[BaseModel]:
        """Call the model once. Returns the validated output, or None when there is none."""
        client = client or get_openai_client()
        if client is None:
            logger.warning(f"{self.name}: OpenAI client not configured")
            return None

        try:
            response = await client.chat.completions.create(
                model=OPENAI_MODEL,
                messages=self.build_messages(data),
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except OpenAIError as e:
            logger.warning(f"{self.name}: OpenAI request failed: {e}")
            return None

        if not content:
            logger.warning(f"{self.name}: empty model output")
            return None

        try:
            output = self.output_model.model_validate(json.loads(strip_code_fences(content)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"{self.name}: model output did not match schema: {e}")
            return None

        if self.is_empty and self.is_empty(data, output):
            logger.warning(f"{self.name}: model output was structurally empty")
            return None
        if self.postprocess:
            output = self.postprocess(data, output)
        return output

    async def run(self, payload, client: Optional[AsyncOpenAI] = None) -> BaseModel:
        data = self.validate_input(payload)
        output = await self.invoke(data, client)
        if output is None:
            logger.info(f"{self.name}: using fallback output")
            return self.fallback_for(data)
        return output
