"""
Mode-specific system prompts.

Each *mode* is a named template that defines the agent's persona and behavioural constraints.
Templates carry ``{PLACEHOLDER}`` tokens that are filled from the agent's context at build time.
Placeholders without a matching context key are left verbatim.
"""

import logging
from typing import (
    Dict,
    List,
    Mapping,
)

logger = logging.getLogger(__name__)


class UnknownModeError(ValueError):
    """Raised when a prompt is requested for a mode that was never registered."""


class PromptManager:
    """Registry of named prompt templates."""

    def __init__(self) -> None:
        self._templates: Dict[str, str] = {}

    def register_mode(self, mode: str, template: str) -> None:
        """Register (or replace) the template for *mode*."""
        self._templates[mode] = template
        logger.debug("Registered mode '%s'", mode)

    def build_system_prompt(self, mode: str, context: Mapping[str, str] | None = None) -> str:
        """
        Return the template for *mode* with every ``{KEY}`` replaced by ``context[KEY]``.

        Raises
        ------
        UnknownModeError
            If *mode* has not been registered.
        """
        template = self._templates.get(mode)
        if template is None:
            raise UnknownModeError(
                f"Unknown mode: '{mode}'. Register it first via register_mode()."
            )

        # Plain replacement rather than str.format: templates contain literal JSON braces.
        result = template
        for key, value in (context or {}).items():
            result = result.replace("{" + key + "}", value)
        return result

    def has_mode(self, mode: str) -> bool:
        return mode in self._templates

    def modes(self) -> List[str]:
        """Registered mode names in registration order."""
        return list(self._templates)

    # ------------------------------------------------------------------
    # Built-in default modes
    # ------------------------------------------------------------------
    @classmethod
    def with_defaults(cls) -> "PromptManager":
        """Create a manager pre-loaded with the stock NPC modes."""
        manager = cls()
        manager.register_mode("PersonaBuilder", PERSONA_BUILDER_PROMPT)
        manager.register_mode("NpcChat", NPC_CHAT_PROMPT)
        manager.register_mode("MemoryCompactor", MEMORY_COMPACTOR_PROMPT)
        return manager


PERSONA_BUILDER_PROMPT = """\
You are a Persona Builder agent.
Your task is to analyze raw text data about a game character and extract a structured character profile.
Character Name: {NPC_NAME}

Output a JSON object with exactly these fields:
- Name (string)
- CoreTraits (array of 3-5 adjective strings)
- Relationships (object mapping character names to relationship descriptions)
- Likes (array of strings)
- Dislikes (array of strings)
- ScheduleAnchors (array of location strings where this character commonly hangs out)
- BackgroundSummary (a 2-3 sentence summary of who this character is)

Output ONLY the JSON object, no markdown fences, no explanation."""

NPC_CHAT_PROMPT = """\
You are {NPC_NAME}, a resident of the valley.
Stay in character at all times. Respond naturally and keep responses concise (1-3 sentences).
Speak as the character would in the game.
If the conversation makes you want to physically do something (eat, walk somewhere, rest),
call the set_goal tool and let the planner work out how.

Your personality: {SOUL}
Recent memories: {MEMORIES}
Current game context: {GAME_STATE}"""

MEMORY_COMPACTOR_PROMPT = """\
You are a Memory Compactor agent.
Your task is to analyze a list of daily events for an NPC and extract only the truly important facts worth remembering long-term.

NPC Name: {NPC_NAME}

For each event worth remembering, output a JSON array where each element has:
- "Fact" (string): A concise statement of what happened
- "Importance" (integer 1-10): How significant this is for long-term memory

If nothing important happened, return an empty array: []
Output ONLY the JSON array, no markdown fences, no explanation."""
