"""
Search proxy for the in-app browser.
Forwards a query to the Google Custom Search JSON API and always answers
with {items, error?} instead of raising.
"""

import os
import logging
from typing import Optional, Dict, Any
import httpx
from dotenv import load_dotenv
from .flow_models import SearchRequest, SearchResponse, SearchResultItem

load_dotenv()

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"


class SearchService:
    """Thin wrapper around the Custom Search API"""

    def __init__(self, api_key: Optional[str] = None, engine_id: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else os.getenv("GOOGLE_CUSTOM_SEARCH_API_KEY")
        self.engine_id = engine_id if engine_id is not None else os.getenv("GOOGLE_CUSTOM_SEARCH_ENGINE_ID")
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    async def search(self, payload) -> SearchResponse:
        request = payload if isinstance(payload, SearchRequest) else SearchRequest.model_validate(payload)

        if not self.configured:
            logger.warning("Search requested but GOOGLE_CUSTOM_SEARCH_API_KEY / ENGINE_ID are not set")
            return SearchResponse(items=[], error="Search service is not configured.")

        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": request.query,
            "num": request.numResults,
            "safe": "off",
        }

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.get(CUSTOM_SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Search request failed: {e}")
            return SearchResponse(items=[], error=f"Request failed: {str(e)}")

        data = self._json_or_empty(response)

        if response.status_code != 200:
            message = self._error_message(data) or response.reason_phrase
            logger.error(f"Search API returned {response.status_code}: {message}")
            return SearchResponse(items=[], error=f"API Error: {message}")

        if data.get("error"):
            message = self._error_message(data) or "Unknown error"
            logger.error(f"Search API error in body: {message}")
            return SearchResponse(items=[], error=f"API Error: {message}")

        items = [
            SearchResultItem(
                title=item.get("title", ""),
                link=item.get("link", ""),
                snippet=item.get("snippet", ""),
                displayLink=item.get("displayLink"),
            )
            for item in data.get("items") or []
        ]
        logger.info(f"Search for '{request.query}' returned {len(items)} items")
        return SearchResponse(items=items)

    @staticmethod
    def _error_message(data: Dict[str, Any]) -> Optional[str]:
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return error

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
