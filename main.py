import flet as ft
import os
import sys
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from exam_app.api.backend import ExamBackend
from exam_app.api.client import ApiError, ExamApiClient
from exam_app.config import ENABLE_FULLSCREEN_LOCK, EXAM_COLORS
from exam_app.session.controller import ExamSessionController
from exam_app.session.entry import SessionEntry
from exam_app.session.proctoring import FullscreenGuard
from exam_app.session.report import report_summary, report_text, summary_text
from exam_app.utils.logging_config import setup_logging


class ExamApp:
    def __init__(self, route=None):
        self.backend = ExamBackend(ExamApiClient())
        self.start_route = route
        self.guard = None
        self.controller = None

    def main(self, page: ft.Page):
        page.title = "Exam Session"
        page.theme_mode = ft.ThemeMode.LIGHT
        page.window.width = 1200
        page.window.height = 800
        page.window.min_width = 800
        page.window.min_height = 600
        page.padding = 0
        page.spacing = 0
        page.theme = ft.Theme(color_scheme_seed=ft.Colors.BLUE, use_material3=True)

        log_file = setup_logging()
        print(f"[SETUP] Logging to {log_file}")

        self.guard = FullscreenGuard(page, enabled=ENABLE_FULLSCREEN_LOCK)

        route = self.start_route
        if not route and page.route and page.route != '/':
            route = page.route
        if route:
            try:
                self.show_exam(page, SessionEntry.from_route(route))
                return
            except ValueError as e:
                print(f"[MAIN] Ignoring start route: {e}")
        self.show_submissions(page)

    def show_exam(self, page: ft.Page, entry: SessionEntry):
        from exam_app.views.examinee.exam_interface import create_exam_interface

        page.clean()
        self.controller = ExamSessionController(self.backend, entry, guard=self.guard)
        exam_view = create_exam_interface(page, self.controller,
                                          return_callback=lambda result: self.on_exam_finished(page, result),
                                          pause_callback=lambda: self.on_exam_paused(page))
        page.add(exam_view)
        page.update()

    def on_exam_paused(self, page: ft.Page):
        """Leave the exam screen; the paused submission is resumed from the list"""
        controller = self.controller
        self.controller = None
        if controller is not None:
            controller.detach()
        self.show_submissions(page, notice="Exam paused. Resume it from the list below.")

    def on_exam_finished(self, page: ft.Page, result):
        """Return to the submissions list and load the detailed report"""
        controller = self.controller
        self.controller = None
        notice = self.show_submissions(page, notice=summary_text(result))

        async def load_report():
            report = await controller.report.fetch_report(result)
            if report is None or notice is None:
                return
            print(f"[REPORT] Report loaded for submission {result.submission_id}")
            notice.value = f"{summary_text(result)}\n{report_text(report_summary(report))}"
            page.update()

        page.run_task(load_report)

    def show_submissions(self, page: ft.Page, notice=None):
        """List earlier submissions; paused ones can be resumed. Returns the notice text control."""
        page.clean()
        rows = ft.Column([ft.ProgressRing()], spacing=8, scroll=ft.ScrollMode.AUTO, expand=True)
        controls = [ft.Text("All Submissions", size=22, weight=ft.FontWeight.BOLD)]
        notice_text = None
        if notice:
            notice_text = ft.Text(notice, color=EXAM_COLORS['success'], size=16)
            controls.append(ft.Container(
                content=notice_text,
                padding=10,
                border=ft.border.all(1, EXAM_COLORS['success']),
                border_radius=8
            ))
        controls.append(rows)
        page.add(ft.Container(content=ft.Column(controls, spacing=16, expand=True),
                              padding=ft.padding.all(24), expand=True, bgcolor=EXAM_COLORS['background']))
        page.update()

        async def load_submissions():
            try:
                submissions = await self.backend.list_submissions()
            except ApiError as e:
                rows.controls = [ft.Text(f"Failed to fetch submissions: {e.message}", color=EXAM_COLORS['error'])]
                page.update()
                return

            items = []
            for submission in submissions:
                entry = SessionEntry.from_submission(submission)
                status = submission.get('status') or 'unknown'
                action = None
                if status == 'paused':
                    action = ft.ElevatedButton("Resume", icon=ft.Icons.PLAY_ARROW,
                                               on_click=lambda e, en=entry: self.show_exam(page, en))
                items.append(ft.Container(
                    content=ft.Row([
                        ft.Text(entry.exercise_id or entry.chapter_id or entry.submission_id, expand=True),
                        ft.Text(status, color=EXAM_COLORS['text_secondary']),
                        action or ft.Container(width=0),
                    ], spacing=12),
                    padding=12,
                    bgcolor=EXAM_COLORS['surface'],
                    border_radius=8
                ))
            rows.controls = items or [ft.Text("No submissions yet.", color=EXAM_COLORS['text_secondary'])]
            page.update()

        page.run_task(load_submissions)
        return notice_text


def main(page: ft.Page):
    route = sys.argv[1] if len(sys.argv) > 1 else os.getenv("EXAM_ROUTE")
    app = ExamApp(route)
    app.main(page)


if __name__ == "__main__":
    ft.app(target=main)
