"""
Plan synthesizer: turns a directive into a validated task plan.

The planner model is asked for strict JSON, but nothing downstream trusts the
shape it returns. The payload is decoded leniently, the first array of
task-shaped objects is located wherever it sits, and every entry is normalized
into a Task. Anything that cannot yield at least one usable task raises
PlanError, which the coordinator answers with the emergency plan.
"""

import json
import logging
import re
from typing import Any, Optional

from ..clients.base import GatewayClient, GenerationKind, GenerationRequest, InlineData
from .. import stats
from .errors import ErrorKind, MissionError, PlanError
from .nodes import describe_roster
from .policy import CallPolicy, with_policy
from .state import Directive, Plan, PlanSource, Task, TaskKind

logger = logging.getLogger(__name__)


PLANNER_INSTRUCTION = """You are SN-00, the apex planner of a production swarm.
Decompose the operator's directive into 3 to 6 tasks and bind each task to exactly one node from the roster.

Respond with a single JSON object and nothing else. No prose, no markdown, no commentary.
Shape:
{"tasks": [{"id": "t1", "label": "Short_Label", "assignedNode": "RA-01", "kind": "RESEARCH", "description": "What the node must produce"}]}

kind must be one of RESEARCH, STRATEGY, IMAGE, VIDEO.
Descriptions are the full prompt the node will receive; make them self-contained."""

PLAN_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "tasks": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "label": {"type": "STRING"},
                    "assignedNode": {"type": "STRING"},
                    "kind": {"type": "STRING", "enum": [k.value for k in TaskKind]},
                    "description": {"type": "STRING"},
                },
                "required": ["assignedNode", "description"],
            },
        },
    },
    "required": ["tasks"],
}

NODE_KEYS = ("assignedNode", "assigned_node", "node", "nodeId", "node_id")
DESCRIPTION_KEYS = ("description", "prompt", "task")
LABEL_KEYS = ("label", "title", "name")
KIND_KEYS = ("kind", "type")

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def extract_json_payload(text: str) -> Any:
    """Decode raw JSON, then fenced blocks, then the outermost {...} or [...] span."""
    if not text or not text.strip():
        raise PlanError(ErrorKind.PLAN_FORMAT_ERROR, "planner returned an empty response")

    candidates = [text.strip()]
    candidates.extend(m.group(1).strip() for m in _FENCE_RE.finditer(text))
    for pattern in (r"\{[\s\S]+\}", r"\[[\s\S]+\]"):
        match = re.search(pattern, text)
        if match:
            candidates.append(match.group())

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise PlanError(ErrorKind.PLAN_FORMAT_ERROR, "planner response is not decodable JSON")


def _is_task_shaped(item: Any) -> bool:
    return isinstance(item, dict) and any(k in item for k in NODE_KEYS + DESCRIPTION_KEYS)


def find_task_array(payload: Any, max_depth: int = 6, _depth: int = 0) -> Optional[list]:
    """Depth-first search for the first list holding at least one task-shaped object."""
    if _depth > max_depth:
        return None

    if isinstance(payload, list):
        if any(_is_task_shaped(item) for item in payload):
            return payload
        children = payload
    elif isinstance(payload, dict):
        children = list(payload.values())
    else:
        return None

    for child in children:
        found = find_task_array(child, max_depth, _depth + 1)
        if found is not None:
            return found
    return None


def _pick(raw: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_task(raw: Any, index: int) -> Optional[Task]:
    if not isinstance(raw, dict):
        return None

    node = _pick(raw, NODE_KEYS)
    description = _pick(raw, DESCRIPTION_KEYS)
    if not node or not description:
        return None

    kind_value = (_pick(raw, KIND_KEYS) or "").upper()
    try:
        kind = TaskKind(kind_value)
        explicit_kind = True
    except ValueError:
        kind = TaskKind.STRATEGY
        explicit_kind = False

    return Task(
        id=_pick(raw, ("id",)) or f"task-{index + 1}",
        label=_pick(raw, LABEL_KEYS) or f"Objective_{index + 1:02d}",
        description=description,
        assigned_node=node.upper(),
        kind=kind,
        explicit_kind=explicit_kind,
    )


def normalize_tasks(raw_tasks: list) -> list[Task]:
    tasks: list[Task] = []
    seen: dict[str, int] = {}
    for index, raw in enumerate(raw_tasks):
        task = normalize_task(raw, index)
        if task is None:
            logger.debug("Discarding unusable plan entry %d: %r", index, raw)
            continue
        if task.id in seen:
            seen[task.id] += 1
            task.id = f"{task.id}-{seen[task.id]}"
        else:
            seen[task.id] = 1
        tasks.append(task)
    return tasks


def emergency_plan(text: str) -> Plan:
    tasks = [
        Task("e1", "Intel_Scan", f"Deep intel for {text}", "RA-01", TaskKind.RESEARCH),
        Task("e2", "Strategy_Blueprint", f"Sovereign strategy for {text}", "SP-01", TaskKind.STRATEGY),
        Task(
            "e3",
            "Master_Visual",
            f"Ultra-high-end visual asset for {text} in Obsidian & Chrome style.",
            "CC-10",
            TaskKind.IMAGE,
        ),
        Task(
            "e4",
            "Cinema_Render",
            f"Cinematic trailer for {text} using Veo 3.1 technology.",
            "CC-06",
            TaskKind.VIDEO,
        ),
    ]
    return Plan(tasks=tasks, source=PlanSource.FALLBACK)


class PlanSynthesizer:
    def __init__(
        self,
        client: GatewayClient,
        model: Optional[str] = None,
        policy: Optional[CallPolicy] = None,
        max_depth: int = 6,
    ):
        self.client = client
        self.model = model
        self.policy = policy or CallPolicy()
        self.max_depth = max_depth

    def build_prompt(self, text: str) -> str:
        return f"COMPILE PRODUCTION SWARM FOR: {text}\n\nNode roster:\n{describe_roster()}"

    async def _request(self, request: GenerationRequest):
        stats.record_call("planner")
        return await self.client.generate(request)

    async def synthesize(self, directive: Directive) -> Plan:
        request = GenerationRequest(
            prompt=self.build_prompt(directive.text),
            kind=GenerationKind.TEXT,
            model=self.model,
            attachments=[InlineData(data=f.data, mime_type=f.mime_type) for f in directive.files],
            system_instruction=PLANNER_INSTRUCTION,
            response_schema=PLAN_SCHEMA,
        )

        try:
            response = await with_policy(lambda: self._request(request), self.policy, label="SN-00 planner")
        except MissionError as e:
            raise PlanError(ErrorKind.GATEWAY_FAILURE, e.message or str(e)) from e

        payload = extract_json_payload(response.text or "")
        if not isinstance(payload, (dict, list)):
            raise PlanError(ErrorKind.PLAN_FORMAT_ERROR, f"planner returned a bare {type(payload).__name__}")

        raw_tasks = find_task_array(payload, self.max_depth)
        if raw_tasks is None:
            raise PlanError(ErrorKind.PLAN_EMPTY, "no task array in planner response")

        tasks = normalize_tasks(raw_tasks)
        if not tasks:
            raise PlanError(ErrorKind.PLAN_EMPTY, f"none of {len(raw_tasks)} planned tasks were usable")

        logger.info("Plan synthesized with %d task(s)", len(tasks))
        return Plan(tasks=tasks, source=PlanSource.SYNTHESIZED)
