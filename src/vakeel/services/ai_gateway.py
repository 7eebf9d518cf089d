"""Boundary to the upstream generative-text service.

The upstream is an OpenAI-compatible chat completion endpoint reached through
langchain-openai. The gateway never raises: without credentials it answers
with localized mock text, and on timeout or transport failure it answers with
a localized apology so the conversation can continue. There is no retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

from langchain_openai import ChatOpenAI
from openai import APITimeoutError

from ..config import Settings
from ..observability.metrics import record_ai_fallback


logger = logging.getLogger(__name__)
LOG = logging.getLogger("vakeel.llm")


SYSTEM_PROMPTS: Dict[str, str] = {
    "en": (
        "You are VakeelGPT, an expert Indian legal AI assistant. You provide accurate, helpful legal "
        "information in simple terms.\n\n"
        "Key Guidelines:\n"
        "- Always clarify that you provide general legal information, not legal advice\n"
        "- Reference relevant Indian laws (IPC, CrPC, CPC, Constitution, etc.)\n"
        "- Explain complex legal concepts in simple language\n"
        "- Suggest consulting a qualified lawyer for specific cases\n"
        "- Be culturally sensitive to Indian legal practices\n"
        "- Support document drafting with standard Indian legal formats"
    ),
    "hi": (
        "आप VakeelGPT हैं, एक विशेषज्ञ भारतीय कानूनी AI सहायक। आप सटीक, उपयोगी कानूनी जानकारी सरल शब्दों में "
        "प्रदान करते हैं।\n\n"
        "मुख्य दिशानिर्देश:\n"
        "- हमेशा स्पष्ट करें कि आप सामान्य कानूनी जानकारी प्रदान करते हैं, कानूनी सलाह नहीं\n"
        "- प्रासंगिक भारतीय कानूनों का संदर्भ दें (IPC, CrPC, CPC, संविधान, आदि)\n"
        "- जटिल कानूनी अवधारणाओं को सरल भाषा में समझाएं\n"
        "- विशिष्ट मामलों के लिए योग्य वकील से सलाह लेने का सुझाव दें"
    ),
    "ta": "நீங்கள் VakeelGPT, ஒரு நிபுணத்துவம் வாய்ந்த இந்திய சட்ட AI உதவியாளர். நீங்கள் துல்லியமான, பயனுள்ள சட்ட தகவல்களை எளிய சொற்களில் வழங்குகிறீர்கள்.",
    "te": "మీరు VakeelGPT, ఒక నిపుణుడైన భారతీయ న్యాయ AI సహాయకుడు. మీరు ఖచ్చితమైన, ఉపయోగకరమైన న్యాయ సమాచారాన్ని సాధారణ పదాలలో అందిస్తారు.",
    "bn": "আপনি VakeelGPT, একজন বিশেষজ্ঞ ভারতীয় আইনি AI সহায়ক। আপনি নির্ভুল, সহায়ক আইনি তথ্য সহজ ভাষায় প্রদান করেন।",
}

MOCK_RESPONSES: Dict[str, Dict[str, str]] = {
    "en": {
        "general": (
            "I understand you're asking about Indian legal matters. While I'd love to provide specific "
            "guidance, I recommend consulting with a qualified lawyer for personalized advice. For general "
            "information, you can refer to Indian legal resources or contact your local legal aid center."
        ),
        "document_draft": (
            "Here's a basic template for your legal document. Please note that this is a general format and "
            "should be reviewed by a legal professional:\n\n[DOCUMENT TEMPLATE]\n\n"
            "This document is created on [DATE] between [PARTY 1] and [PARTY 2].\n\n"
            "[Standard legal clauses would appear here]\n\n"
            "Please consult a lawyer to customize this document for your specific needs."
        ),
        "document_review": (
            "Review summary: the document follows a recognizable structure. Check that every placeholder is "
            "filled, that the parties and dates are stated in full, and that a governing-law and dispute "
            "resolution clause is present. Have a qualified lawyer confirm compliance before signing."
        ),
    },
    "hi": {
        "general": (
            "मैं समझता हूं कि आप भारतीय कानूनी मामलों के बारे में पूछ रहे हैं। जबकि मैं विशिष्ट मार्गदर्शन प्रदान "
            "करना चाहूंगा, मैं व्यक्तिगत सलाह के लिए एक योग्य वकील से सलाह लेने की सलाह देता हूं।"
        ),
        "document_draft": (
            "यहां आपके कानूनी दस्तावेज़ के लिए एक बुनियादी टेम्प्लेट है। कृपया ध्यान दें कि यह एक सामान्य प्रारूप है "
            "और इसकी समीक्षा एक कानूनी पेशेवर द्वारा की जानी चाहिए।"
        ),
    },
}

ERROR_RESPONSES: Dict[str, str] = {
    "en": "I'm experiencing technical difficulties. Please try again in a moment or contact support if the issue persists.",
    "hi": "मुझे तकनीकी कठिनाइयों का सामना करना पड़ रहा है। कृपया एक क्षण में फिर से कोशिश करें।",
    "ta": "எனக்கு தொழில்நுட்ப சிக்கல்கள் உள்ளன. தயவுசெய்து சற்று நேரத்தில் மீண்டும் முயற்சிக்கவும்.",
    "te": "నాకు సాంకేతిక ఇబ్బందులు ఉన్నాయి. దయచేసి ఒక క్షణంలో మళ్ళీ ప్రయత్నించండి.",
    "bn": "আমার প্রযুক্তিগত সমস্যা হচ্ছে। দয়া করে একটু পরে আবার চেষ্টা করুন।",
}


def system_prompt(language: str) -> str:
    return SYSTEM_PROMPTS.get(language, SYSTEM_PROMPTS["en"])


def mock_response(language: str, kind: str) -> str:
    responses = MOCK_RESPONSES.get(language, MOCK_RESPONSES["en"])
    return responses.get(kind) or responses["general"]


def error_response(language: str) -> str:
    return ERROR_RESPONSES.get(language, ERROR_RESPONSES["en"])


@dataclass
class HistoryPair:
    message: str
    response: str


@dataclass
class PromptContext:
    """Everything the upstream call needs: system prompt, prior pairs (oldest first) and the new prompt."""

    prompt: str
    language: str = "en"
    kind: str = "general"
    history: List[HistoryPair] = field(default_factory=list)

    def to_messages(self) -> List[Dict[str, str]]:
        msgs = [{"role": "system", "content": system_prompt(self.language)}]
        for pair in self.history:
            msgs.append({"role": "user", "content": pair.message})
            msgs.append({"role": "assistant", "content": pair.response})
        msgs.append({"role": "user", "content": self.prompt})
        return msgs


LLMFactory = Callable[[Settings], Any]


def _default_llm_factory(settings: Settings) -> Any:
    return ChatOpenAI(
        api_key=settings.ai_api_key,
        base_url=settings.ai_endpoint,
        model=settings.ai_model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        top_p=0.9,
        timeout=settings.ai_timeout,
        max_retries=0,
    )


class AIGateway:
    def __init__(self, settings: Settings, llm_factory: Optional[LLMFactory] = None) -> None:
        self._settings = settings
        self._llm_factory = llm_factory or _default_llm_factory
        self._llm: Any = None
        if not settings.ai_configured and llm_factory is None:
            logger.warning("Upstream AI key/endpoint not configured; using mock responses")

    @property
    def configured(self) -> bool:
        return self._settings.ai_configured or self._llm_factory is not _default_llm_factory

    def _client(self) -> Any:
        if self._llm is None:
            self._llm = self._llm_factory(self._settings)
        return self._llm

    def generate(self, context: PromptContext) -> str:
        if not self.configured:
            record_ai_fallback("mock")
            return mock_response(context.language, context.kind)
        LOG.debug(
            "llm_invoke",
            extra={"model": self._settings.ai_model, "kind": context.kind, "history": len(context.history)},
        )
        try:
            res = self._client().invoke(context.to_messages())
            text = res.content if hasattr(res, "content") else str(res)
            text = str(text or "").strip()
            if not text:
                raise RuntimeError("llm_empty_response")
            return text
        except (APITimeoutError, TimeoutError) as exc:
            LOG.warning("llm_timeout", extra={"timeout_s": self._settings.ai_timeout, "err": str(exc)})
            record_ai_fallback("timeout")
        except Exception as exc:
            LOG.warning("llm_fallback", extra={"err": str(exc)})
            record_ai_fallback("error")
        return error_response(context.language)
