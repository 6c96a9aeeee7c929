"""LLM orchestrator: one chat-completion call that classifies the guest text and drafts a reply.

The model is an untrusted producer. Whatever it returns is normalized into an
`OrchestrationResult`; malformed output and transport failures degrade to the
canonical fallback instead of raising, so the webhook can always persist the
exchange.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from app.config import settings
from app.logging_config import get_logger
from app.services.llm import LLMProvider, OpenAIProvider

logger = get_logger("orchestrator_service")

GENERIC_INTENT = "GENERIC"
FALLBACK_REPLY_TEXT = "문의 감사합니다! 현재 자동응답 시스템 세팅 중이라, 조금 뒤에 다시 안내드리겠습니다 :)"
NO_HISTORY_TEXT = "(이전 대화 없음)"
NO_KNOWLEDGE_TEXT = "(관련 지식 없음)"

ORCHESTRATOR_SYSTEM_PROMPT = """
너는 게스트하우스 SMS 자동응답 시스템의 대화 오케스트레이터다.

할 일:
- 손님 문자를 읽고 무엇을 원하는지 파악한다.
- 제공된 지식 문서(파티 시간, 파티 신청 방법, 체크인/체크아웃 규칙, 주차 등)만 근거로
  한국어 존댓말 답장을 작성한다.
- 파티 신청처럼 여러 번 주고받는 플로우에서는 아직 모르는 정보를 자연스럽게 되묻는다.
- 출력은 JSON 객체 하나뿐이다. 설명이나 코드블록을 붙이지 않는다.

JSON 스키마:
{
  "reply_text": string,        // 손님에게 보낼 문자 본문
  "intent": string,            // 예: "PARTY", "CHECKIN", "CHECKOUT", "GENERIC"
  "flow_type": string | null,  // 예: "PARTY_RESERVATION", 플로우가 없으면 null
  "slots": { ... },            // 플로우에서 파악한 정보, 없으면 {}
  "need_followup": boolean,    // 직원이 직접 확인해야 하면 true
  "end_flow": boolean          // 현재 플로우를 끝내도 되면 true
}

파티 신청 slots 예시:
{
  "date": "2025-12-24",
  "male_count": 1,
  "female_count": 2,
  "only_party": true,
  "time_slot": "FIRST"
}

규칙:
- reply_text 는 그대로 문자로 보낼 수 있게 완성된 문장으로 쓴다.
- 플로우 진행 중에는 flow_type 을 유지하고, 필요한 정보가 남아 있으면 end_flow 를 false 로 둔다.
- 지식 문서에 없는 내용은 지어내지 말고, 모른다고 말한 뒤 어떤 정보를 알려주면 되는지 안내한다.
- intent 는 가능하면 [인텐트 목록] 에 있는 이름 중에서 고른다.
"""


@dataclass(frozen=True)
class OrchestrationResult:
    reply_text: str
    intent: str
    flow_type: Optional[str] = None
    slots: Dict[str, Any] = field(default_factory=dict)
    need_followup: bool = False
    end_flow: bool = False
    is_complaint: bool = False

    def as_complaint(self) -> "OrchestrationResult":
        return replace(self, is_complaint=True)


def fallback_result() -> OrchestrationResult:
    return OrchestrationResult(
        reply_text=FALLBACK_REPLY_TEXT,
        intent=GENERIC_INTENT,
        flow_type=None,
        slots={},
        need_followup=True,
        end_flow=False,
    )


def normalize_orchestrator_output(raw: Optional[str]) -> OrchestrationResult:
    """Parse raw model output and substitute safe defaults for missing or invalid fields.

    Empty output is unparseable here, not an empty object: it gets the fallback
    reply and a follow-up instead of silently producing no reply.
    """
    try:
        parsed = json.loads((raw or "").strip())
    except (json.JSONDecodeError, RecursionError):
        logger.error("Orchestrator JSON parse error", extra={"context": {"raw": (raw or "")[:500]}})
        return fallback_result()

    if not isinstance(parsed, dict):
        logger.error("Orchestrator output is not a JSON object", extra={"context": {"raw": (raw or "")[:500]}})
        return fallback_result()

    reply_text = parsed.get("reply_text")
    intent = parsed.get("intent")
    flow_type = parsed.get("flow_type")
    slots = parsed.get("slots")

    return OrchestrationResult(
        reply_text=reply_text if isinstance(reply_text, str) else "",
        intent=intent if isinstance(intent, str) and intent else GENERIC_INTENT,
        flow_type=flow_type if isinstance(flow_type, str) and flow_type else None,
        slots={str(k): v for k, v in slots.items()} if isinstance(slots, dict) else {},
        need_followup=bool(parsed.get("need_followup")),
        end_flow=bool(parsed.get("end_flow")),
        is_complaint=bool(parsed.get("is_complaint")),
    )


def build_orchestrator_user_prompt(
    text: str,
    guest_state: Optional[str],
    history: Sequence[dict],
    knowledge_text: str,
    intents: Sequence[Any] = (),
) -> str:
    history_text = "\n".join(f"[{h['direction']}] {h['text']}" for h in history)
    intent_lines = "\n".join(
        f"- {intent.name}: {intent.description or ''}".rstrip(": ") for intent in intents
    )

    prompt = f"""
[손님 최신 문자]
"{text}"

[이 번호와의 최근 대화]
{history_text or NO_HISTORY_TEXT}

[현재 게스트 상태]
{guest_state or "UNKNOWN"}

[관련 지식 문서]
{knowledge_text or NO_KNOWLEDGE_TEXT}
"""
    if intent_lines:
        prompt += f"""
[인텐트 목록]
{intent_lines}
"""
    prompt += """
위 정보를 바탕으로 reply_text, intent, flow_type, slots, need_followup, end_flow 를
모두 포함한 유효한 JSON 객체 하나만 출력해.
"""
    return prompt


_llm_provider: Optional[LLMProvider] = None


def get_llm_provider() -> Optional[LLMProvider]:
    """Get or create the LLM provider. None when no API key is configured."""
    global _llm_provider
    if _llm_provider is None and settings.openai_api_key:
        _llm_provider = OpenAIProvider(
            api_key=settings.openai_api_key,
            default_model=settings.openai_model,
            default_timeout=settings.llm_timeout_seconds,
        )
    return _llm_provider


def run_orchestrator(
    text: str,
    guest_state: Optional[str],
    history: Sequence[dict],
    knowledge_text: str,
    intents: Sequence[Any] = (),
    provider: Optional[LLMProvider] = None,
) -> OrchestrationResult:
    """Classify and draft a reply. Never raises."""
    provider = provider or get_llm_provider()
    if provider is None:
        logger.warning("LLM provider not configured, using fallback reply")
        return fallback_result()

    messages: List[dict] = [
        {"role": "system", "content": ORCHESTRATOR_SYSTEM_PROMPT.strip()},
        {
            "role": "user",
            "content": build_orchestrator_user_prompt(text, guest_state, history, knowledge_text, intents).strip(),
        },
    ]

    try:
        response = provider.generate(
            messages,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout_seconds=settings.llm_timeout_seconds,
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        logger.error("Orchestrator LLM call failed", extra={"context": {"error": str(exc)}}, exc_info=True)
        return fallback_result()

    try:
        result = normalize_orchestrator_output(response.content)
    except Exception as exc:
        logger.error("Orchestrator output handling failed", extra={"context": {"error": str(exc)}}, exc_info=True)
        return fallback_result()

    logger.info(
        "Orchestrator result",
        extra={
            "context": {
                "intent": result.intent,
                "flow_type": result.flow_type,
                "need_followup": result.need_followup,
                "end_flow": result.end_flow,
            }
        },
    )
    return result
