"""NoticeRenderer — Jinja2 renderer for the confidentiality notice.

Loads templates from the ``template/`` directory.  The notice text is
fixed; only the worker's name and the questionnaire title vary.
"""

from __future__ import annotations

from pathlib import Path

import jinja2

_NOTICE_TEMPLATE = "confidentiality_notice.jinja2"


class NoticeRenderer:
    """Renders the confidentiality notice shown before any question.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def render_notice(self, *, worker_name: str, assessment_title: str) -> str:
        """Render the notice for one worker and questionnaire."""
        return self.render(
            _NOTICE_TEMPLATE,
            worker_name=worker_name,
            assessment_title=assessment_title,
        )

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context)
