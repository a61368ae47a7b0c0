# scriptgen/selectors.py
from typing import List, Optional

from scriptgen.channel import DebugChannel
from scriptgen.errors import SelectorResolutionFailure
from scriptgen.events import AXNode

# Functions below run with `this` bound to the remote object via
# Runtime.callFunctionOn.

IS_SUBMIT_BUTTON_JS = r"""
function() {
  const el = this;
  if (!(el instanceof Element)) return false;
  const tag = el.tagName.toLowerCase();
  if (tag !== "button" && tag !== "input") return false;
  const type = (el.getAttribute("type") || (tag === "button" ? "submit" : "")).toLowerCase();
  return type === "submit" && !!el.form;
}
"""

GET_PARENT_JS = r"""
function() {
  return this.parentElement;
}
"""

CSS_PATH_JS = r"""
function() {
  let el = this;
  if (!(el instanceof Element)) return null;
  if (el.id) return `#${CSS.escape(el.id)}`;
  const parts = [];
  while (el && el.nodeType === 1 && el.tagName.toLowerCase() !== "html") {
    let part = el.tagName.toLowerCase();
    if (el.id) {
      parts.unshift(`#${CSS.escape(el.id)}`);
      break;
    }
    const parent = el.parentElement;
    if (!parent) {
      parts.unshift(part);
      break;
    }
    const siblings = Array.from(parent.children).filter(e => e.tagName === el.tagName);
    if (siblings.length > 1) {
      part += `:nth-of-type(${siblings.indexOf(el) + 1})`;
    }
    parts.unshift(part);
    el = parent;
  }
  return parts.length ? parts.join(" > ") : null;
}
"""


def aria_selector(name: str, role: Optional[str] = None) -> str:
    if role:
        return f'aria/{name}[role="{role}"]'
    return f"aria/{name}"


class SelectorResolver:
    """Derives a locator for a live node, preferring accessible names.

    The walk goes up from the target while the accessible name keeps the
    child's name as a substring. The first name (or name+role pair) that is
    unique in the document, ignoring the candidate's own subtree, wins.
    Otherwise a CSS path of the original target is returned.
    """

    def __init__(self, channel: DebugChannel):
        self.channel = channel

    async def resolve(self, target: Optional[str]) -> Optional[str]:
        if not target:
            return None
        current: Optional[str] = target
        prev_name = ""
        while current:
            resp = await self.channel.send("Accessibility.queryAXTree", {"objectId": current})
            subtree = [AXNode.from_cdp(n) for n in resp.get("nodes") or []]
            if not subtree:
                break
            name, role = subtree[0].name, subtree[0].role
            # Name lost the child's context: we reached an unrelated ancestor.
            if prev_name not in name:
                break
            prev_name = name
            if name and await self.is_unique(subtree, name):
                return aria_selector(name)
            if name and role and await self.is_unique(subtree, name, role):
                return aria_selector(name, role)
            parent = await self.channel.call_on(current, GET_PARENT_JS)
            current = parent.get("objectId")
        return await self.css_path(target)

    async def require(self, target: Optional[str]) -> str:
        selector = await self.resolve(target)
        if not selector:
            raise SelectorResolutionFailure(target)
        return selector

    async def is_unique(self, ignored: List[AXNode], name: str, role: Optional[str] = None) -> bool:
        doc = await self.channel.send("DOM.getDocument", {"depth": 0})
        params = {
            "backendNodeId": doc["root"]["backendNodeId"],
            "accessibleName": name,
        }
        if role:
            params["role"] = role
        resp = await self.channel.send("Accessibility.queryAXTree", params)
        ignored_ids = {n.backend_id for n in ignored if n.backend_id is not None}
        others = [
            n for n in (AXNode.from_cdp(raw) for raw in resp.get("nodes") or [])
            if n.backend_id not in ignored_ids
        ]
        return len(others) < 2

    async def css_path(self, target: str) -> Optional[str]:
        result = await self.channel.call_on(target, CSS_PATH_JS)
        return result.get("value") or None

    async def is_submit_button(self, target: Optional[str]) -> bool:
        if not target:
            return False
        result = await self.channel.call_on(target, IS_SUBMIT_BUTTON_JS)
        return bool(result.get("value"))
