import html
import logging
import re
import threading
from enum import Enum
from typing import Callable, List, Optional
from anthropic import Anthropic
from geetha_tex.config import Config
from geetha_tex.domain import CalculatedBatch, MonthlyReport

logger = logging.getLogger(__name__)

client = None


class SummaryUnavailable(Exception):
    pass


class SummaryBusy(Exception):
    pass


def get_client():
    global client
    if client is None:
        if not Config.ANTHROPIC_API_KEY:
            return None
        client = Anthropic(api_key=Config.ANTHROPIC_API_KEY)
    return client


def build_prompt(company_name: str, report: MonthlyReport, batches: List[CalculatedBatch]) -> str:
    if batches:
        batch_lines = "\n".join(
            f"- Batch {b.batch_number} (Machine #{b.machine_number}): {b.ftotal} FTotal"
            for b in batches
        )
    else:
        batch_lines = "No batches were processed this month."

    return f"""You are a production manager assistant for a textile company called '{company_name}'.
Analyze the following data for {report.month} and provide a concise, insightful summary for the business owner.
Focus on key performance indicators, highlight successes, and identify potential areas for improvement.
Use Markdown for formatting, including headers, bold text, and bullet points.

**Monthly Report Data:**
- Total Batches: {report.total_batches}
- Total Meter Processed: {report.total_meter:.2f}m
- Total FTotal: {report.total_ftotal}

**Batches processed this month:**
{batch_lines}

Please provide your analysis:"""


def generate_summary(prompt: str) -> str:
    """Ask Claude for the monthly analysis. Raises on any failure; no retries."""
    c = get_client()
    if not c:
        raise SummaryUnavailable("Set ANTHROPIC_API_KEY to enable AI summaries.")

    response = c.messages.create(
        model=Config.AI_MODEL,
        max_tokens=Config.AI_MAX_TOKENS,
        messages=[{"role": "user", "content": prompt}],
    )
    return response.content[0].text


class SummaryState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SummaryTask:
    """One AI summary request for one report month.

    ``start`` refuses while a request is pending. ``cancel`` drops back to idle
    and any result that arrives afterwards is discarded. A finished task holds
    exactly one of ``text`` / ``error``.
    """

    def __init__(self):
        self.state = SummaryState.IDLE
        self.text: Optional[str] = None
        self.error: Optional[str] = None
        self._generation = 0
        self._lock = threading.Lock()

    def start(self) -> int:
        with self._lock:
            if self.state == SummaryState.PENDING:
                raise SummaryBusy("A summary is already being generated")
            self._generation += 1
            self.state = SummaryState.PENDING
            self.text = None
            self.error = None
            return self._generation

    def succeed(self, ticket: int, text: str) -> bool:
        return self._finish(ticket, SummaryState.SUCCEEDED, text=text)

    def fail(self, ticket: int, error: str) -> bool:
        return self._finish(ticket, SummaryState.FAILED, error=error)

    def _finish(self, ticket, state, text=None, error=None) -> bool:
        with self._lock:
            if ticket != self._generation or self.state != SummaryState.PENDING:
                return False
            self.state = state
            self.text = text
            self.error = error
            return True

    def cancel(self):
        with self._lock:
            self._generation += 1
            self.state = SummaryState.IDLE
            self.text = None
            self.error = None

    def run(self, prompt: str, generate: Callable[[str], str] = generate_summary) -> bool:
        """Start, call ``generate`` and record the outcome.

        Returns False when the request failed; True otherwise. A request
        cancelled while in flight counts as not failed, whatever it returned.
        """
        ticket = self.start()
        try:
            text = generate(prompt)
        except Exception as e:
            logger.warning("AI summary failed: %s", e)
            recorded = self.fail(
                ticket,
                "Failed to generate AI summary. Please check your connection or API key. "
                f"Error: {e}",
            )
            return not recorded
        self.succeed(ticket, text)
        return True

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "text": self.text,
            "html": render_markdown(self.text) if self.text else None,
            "error": self.error,
        }


def render_markdown(text: str) -> str:
    """Tiny markdown renderer for the summary: headers, bold, bullets, breaks.

    Not a full parser; it covers what the model is asked to produce.
    """
    out = html.escape(text)
    out = re.sub(r"^### (.*)$", r'<h3 class="text-lg font-semibold mt-3 mb-1">\1</h3>', out, flags=re.M)
    out = re.sub(r"^## (.*)$", r'<h2 class="text-xl font-bold mt-4 mb-2">\1</h2>', out, flags=re.M)
    out = re.sub(r"\*\*(.*?)\*\*", r"<strong>\1</strong>", out)
    out = re.sub(r"^\* (.*)$", r'<li class="ml-4 list-disc">\1</li>', out, flags=re.M)
    out = out.replace("\n", "<br />")
    out = out.replace("<br /><li", "<li").replace("</li><br />", "</li>")
    return out
