from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import requests


class OllamaClient:
    def __init__(
        self,
        host: str,
        keep_alive: str = "5m",
        api_key: Optional[str] = None,
        timeout: float = 120.0,
    ) -> None:
        self.host = host.rstrip("/")
        self.keep_alive = keep_alive
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def chat_json(
        self,
        messages: List[Dict[str, str]],
        model: str,
        schema: Dict[str, Any],
        temperature: float = 0.0,
    ) -> Any:
        """
        Single non-streaming chat call constrained to ``schema``.

        Returns the decoded JSON content. HTTP failures raise requests errors;
        a reply whose content is not valid JSON raises ValueError.
        """

        url = f"{self.host}/api/chat"
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "format": schema,
            "keep_alive": self.keep_alive,
            "options": {"temperature": temperature},
        }
        response = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        content = (data.get("message") or {}).get("content")
        if not content:
            raise ValueError(f"No message content returned from Ollama: {data}")
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Ollama returned non-JSON content: {exc}") from exc
