from .factory import create_analyzer
from .prompt import build_analysis_prompt, excerpt, render_prompt

__all__ = ["build_analysis_prompt", "create_analyzer", "excerpt", "render_prompt"]
