"""Generation progress and review of the generated minutes."""

import asyncio
import logging
from typing import Optional

import click
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner

from ..errors import GenerationFailure, MinutetakerError, SaveFailure, UploadFailure
from ..models.generation import GenerationRequest
from ..services.meeting_service import MeetingService

logger = logging.getLogger(__name__)


class MinutesScreen:
    """Streams a draft while it is generated, then offers save, mail and regenerate."""

    def __init__(self, service: MeetingService, console: Optional[Console] = None):
        self.service = service
        self.console = console or Console()
        self.live: Optional[Live] = None

    def _show_draft(self, minutes: str) -> None:
        if self.live is not None:
            self.live.update(Panel(Markdown(minutes), title="Draft", border_style="blue"))

    async def _generate(self, request: GenerationRequest, feedback: str = "") -> str:
        spinner = Spinner("dots", text="Uploading and waiting for the model...")
        with Live(spinner, console=self.console, refresh_per_second=8) as live:
            self.live = live
            try:
                if feedback:
                    return await self.service.regenerate(request, feedback, on_progress=self._show_draft)
                return await self.service.generate(request, on_progress=self._show_draft)
            finally:
                self.live = None

    def generate(self, request: GenerationRequest, feedback: str = "") -> Optional[str]:
        """Run one generation attempt; failures are reported, not raised."""
        try:
            return asyncio.run(self._generate(request, feedback))
        except (UploadFailure, GenerationFailure) as e:
            self.console.print(f"❌ {e.detail}", style="bold red")
            if e.backup is not None:
                self.console.print(f"The recording was saved under "
                                   f"{self.service.file_manager.get_session_path(self.service.session_id)}",
                                   style="yellow")
            return None

    def run(self, request: GenerationRequest) -> Optional[str]:
        """Generate, then loop over review actions until the user is done.

        Returns:
            The final minutes text, or None if nothing was generated
        """
        minutes = self.generate(request)
        while minutes is None:
            if not click.confirm("Generation failed. Try again?", default=True):
                return None
            minutes = self.generate(request)

        while True:
            self.console.print(Panel(Markdown(minutes), title="Minutes", border_style="green"))
            action = click.prompt(
                "Save (s), edit (e), regenerate with feedback (r), mail (m) or quit (q)?",
                type=click.Choice(["s", "e", "r", "m", "q"]), default="s",
            )
            if action == "q":
                return minutes
            if action == "e":
                edited = click.edit(minutes, extension=".md")
                if edited is not None:
                    minutes = edited.strip()
            elif action == "r":
                feedback = click.prompt("What should change?")
                regenerated = self.generate(request, feedback)
                if regenerated is not None:
                    minutes = regenerated
            elif action == "s":
                self._save(minutes, request)
            elif action == "m":
                self._mail(minutes)

    def _save(self, minutes: str, request: GenerationRequest) -> None:
        user_name = click.prompt("Your name", default="不明")
        try:
            result = asyncio.run(self.service.save(minutes, user_name, artifact=request.audio,
                                                   extra_audio=[f for f in request.files if f.is_audio]))
        except SaveFailure as e:
            self.console.print(f"❌ {e.detail}. The minutes were kept locally; you can retry.",
                               style="bold red")
            return
        self.console.print(f"✅ Saved to Drive: {result.folder_name}/{result.base_name}", style="bold green")
        self.console.print(f"   {result.doc_link}")

    def _mail(self, minutes: str) -> None:
        to = click.prompt("Send to")
        try:
            asyncio.run(self.service.send_mail(to, minutes))
        except MinutetakerError as e:
            self.console.print(f"❌ {e.detail}", style="bold red")
            return
        self.console.print(f"✅ Sent to {to}", style="bold green")
