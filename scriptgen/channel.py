# scriptgen/channel.py
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import CDPSession, Error as PWError

from scriptgen.errors import ProtocolCommunicationFailure


class DebugChannel:
    """Request/response access to one page's DevTools session."""

    def __init__(self, cdp: CDPSession):
        self._cdp = cdp

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            return await self._cdp.send(method, params or {})
        except PWError as e:
            raise ProtocolCommunicationFailure(method, e.message) from e

    def on(self, event: str, handler: Callable[[Dict[str, Any]], Any]):
        self._cdp.on(event, handler)

    async def call_on(self, object_id: str, function_declaration: str) -> Dict[str, Any]:
        resp = await self.send("Runtime.callFunctionOn", {
            "functionDeclaration": function_declaration,
            "objectId": object_id,
        })
        return resp.get("result") or {}

    async def properties(self, object_id: str) -> List[Dict[str, Any]]:
        resp = await self.send("Runtime.getProperties", {"objectId": object_id})
        return resp.get("result") or []

    async def evaluate(self, expression: str) -> Any:
        resp = await self.send("Runtime.evaluate", {"expression": expression})
        return (resp.get("result") or {}).get("value")
