from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape
from pydantic import BaseModel, Field

from piqi.config import DEFAULT_TEMPLATE_DIRECTORY
from piqi.statistics.models import MessageStatistics
from piqi.statistics.report import ScoreReport


class HTMLReportResult(BaseModel):
    output_path: str = Field(description="Directory holding the generated files")
    files_generated: List[str] = Field(default_factory=list)
    index_file: str
    class_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)


def _score_band(score: int) -> str:
    if score >= 90:
        return "good"
    if score >= 70:
        return "fair"
    return "poor"


@dataclass(frozen=True, slots=True)
class HTMLReportGenerator:
    """Writes a static HTML summary of one scored message."""

    template_directory: str = DEFAULT_TEMPLATE_DIRECTORY

    def generate(
        self,
        report: ScoreReport,
        stats: MessageStatistics,
        output_directory: str | Path,
        title: Optional[str] = None,
    ) -> HTMLReportResult:
        output_dir = Path(output_directory)
        output_dir.mkdir(parents=True, exist_ok=True)

        env = self._setup_jinja_environment()

        generated_files: List[str] = []
        index_file = self._generate_index_page(
            env=env,
            output_dir=output_dir,
            report=report,
            stats=stats,
            title=title or f"PIQI score: {report.evaluation_rubric}",
        )
        generated_files.append(index_file)

        css_file = self._generate_stylesheet(env, output_dir)
        generated_files.append(css_file)

        return HTMLReportResult(
            output_path=str(output_dir),
            files_generated=generated_files,
            index_file=index_file,
            class_count=len(report.data_class_results),
            failure_count=sum(f.fail_count for f in stats.fails.values()),
        )

    def _setup_jinja_environment(self) -> Environment:
        env = Environment(
            loader=FileSystemLoader(self.template_directory),
            autoescape=True,
        )

        def score_badge(score: int) -> Markup:
            return Markup(
                f'<span class="score score-{_score_band(score)}">{int(score)}</span>'
            )

        def ratio(numerator: int, denominator: int) -> str:
            return f"{numerator}/{denominator}"

        def cause(text: Optional[str]) -> Markup:
            if not text:
                return Markup('<span class="muted">none</span>')
            return Markup("<code>{}</code>").format(escape(text))

        env.filters["score_badge"] = score_badge
        env.filters["ratio"] = ratio
        env.filters["cause"] = cause

        return env

    def _generate_index_page(
        self,
        *,
        env: Environment,
        output_dir: Path,
        report: ScoreReport,
        stats: MessageStatistics,
        title: str,
    ) -> str:
        fails = sorted(stats.fails.values(), key=lambda f: (-f.fail_count, f.key))
        skips = sorted(stats.skips.values(), key=lambda s: (-s.skip_count, s.key))
        critical = sorted(stats.critical_failures.values(), key=lambda c: c.key)

        template = env.get_template("score_report.html.j2")
        content = template.render(
            title=title,
            report=report,
            fails=fails,
            skips=skips,
            critical_failures=critical,
        )

        output_path = output_dir / "index.html"
        output_path.write_text(content, encoding="utf-8")
        return str(output_path)

    def _generate_stylesheet(self, env: Environment, output_dir: Path) -> str:
        template = env.get_template("styles.css.j2")
        css_content = template.render()
        output_path = output_dir / "styles.css"
        output_path.write_text(css_content, encoding="utf-8")
        return str(output_path)
