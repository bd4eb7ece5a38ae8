"""Conversation mode profiles: display symbol and system-prompt fragment."""

from dataclasses import dataclass
from types import MappingProxyType

from src.chat.models import ConversationMode


@dataclass(frozen=True)
class ModeProfile:
    symbol: str
    system_prompt: str


FALLBACK_PROMPT = "Respond as you see fit."
FALLBACK_SYMBOL = "?"

MODE_PROFILES: MappingProxyType[ConversationMode, ModeProfile] = MappingProxyType({
    ConversationMode.EMPOWER: ModeProfile(
        symbol="力",
        system_prompt=(
            "The user is sharing thoughts and ideas. Encouragement and support is "
            "appropriate. Be helpful and positive, encourage or assist, help elaborate "
            "or offer thoughtful engagement with their point of view, as appropriate."
        ),
    ),
    ConversationMode.INVESTIGATE: ModeProfile(
        symbol="究",
        system_prompt=(
            "The user is questioning, or exploring a space with unknowns. Ask questions, "
            "seek definitions, and help isolate variables and fill in unknown values so "
            "that you can respond with confidence."
        ),
    ),
    ConversationMode.OPINE: ModeProfile(
        symbol="思",
        system_prompt=(
            "The user is sharing an opinion in a conversational way. Feel free to share "
            "one in return, whether that be agreement, a contrasting viewpoint, a "
            "different subjective take, something tangential or something speculative "
            "and uncommitted. Little rigor is required."
        ),
    ),
    ConversationMode.CRITIQUE: ModeProfile(
        symbol="批",
        system_prompt=(
            "The user is expressing something dubious. Challenge this, play devil's "
            "advocate, and/or apply tough-minded critical analysis. The idea needs, at "
            "minimum, to be approached with skepticism, and might require clear pushback."
        ),
    ),
    ConversationMode.AMUSE: ModeProfile(
        symbol="楽",
        system_prompt=(
            "The user is being humorous. Respond unseriously, with lightness, irony, "
            "silliness or jokes."
        ),
    ),
    ConversationMode.SOOTHE: ModeProfile(
        symbol="助",
        system_prompt=(
            "The user is distressed or anxious. Provide solidarity and comfort. Optimism, "
            "reassurance and hope about them or their wishes are appropriate, provided "
            "the wishes are themselves safe."
        ),
    ),
})


def get_system_prompt_for_mode(mode: ConversationMode | None) -> str:
    """Return the fixed instruction for ``mode``, or the fallback if unmapped."""
    profile = MODE_PROFILES.get(mode)  # type: ignore[arg-type]
    return profile.system_prompt if profile else FALLBACK_PROMPT


def get_symbol_for_mode(mode: ConversationMode | None) -> str:
    profile = MODE_PROFILES.get(mode)  # type: ignore[arg-type]
    return profile.symbol if profile else FALLBACK_SYMBOL
