"""
Prompt Management Module

Loads LLM prompts from the .txt files next to this module. Each prompt
exists per language; file names follow `<kind>_<part>_<lang>.txt`:

    kind: insights | quiz
    part: system | period | single
    lang: ru | en
"""

from __future__ import annotations

from pathlib import Path

from reflexum.domain.settings import Language

PROMPTS_DIR = Path(__file__).parent


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self, prompts_dir: Path = PROMPTS_DIR):
        self.prompts_dir = prompts_dir
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Args:
            prompt_name: Name of the prompt file (without .txt extension)

        Returns:
            Prompt template string
        """
        if prompt_name not in self._cache:
            prompt_path = self.prompts_dir / f"{prompt_name}.txt"

            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            self._cache[prompt_name] = prompt_path.read_text(encoding="utf-8").strip()

        return self._cache[prompt_name]

    def get(self, kind: str, part: str, lang: Language, **kwargs) -> str:
        """Load `<kind>_<part>_<lang>` and fill in its placeholders."""
        template = self.load_prompt(f"{kind}_{part}_{Language(lang).value}")
        return template.format(**kwargs) if kwargs else template

    def reload(self) -> None:
        """Clear cache and reload prompts from disk"""
        self._cache.clear()


# Global instance
_loader = PromptLoader()


def get_prompt(kind: str, part: str, lang: Language, **kwargs) -> str:
    """Get a filled prompt (convenience function)"""
    return _loader.get(kind, part, lang, **kwargs)


def reload_prompts() -> None:
    """Reload all prompts from disk (convenience function)"""
    _loader.reload()
