import flet as ft

from exam_app.config import EXAM_COLORS
from exam_app.session.controller import PAUSED_EXIT
from exam_app.session.models import SessionState
from exam_app.session.navigation import ANSWERED, CURRENT
from exam_app.session.report import summary_text
from exam_app.session.timer import format_time


def create_exam_interface(page, controller, return_callback=None, pause_callback=None):
    """Create the exam screen for one session controller as a plain function"""

    ui_state = {
        'main_container': None,
        'timer_display': None,
        'render_key': None,
        'submit_dialog': None,
        'busy': False,
    }

    # === Page helpers ===

    def update_page():
        try:
            page.update()
        except Exception as e:
            print(f"[PAGE] Could not update page: {e}")

    def show_message(message, color=None):
        try:
            snack = ft.SnackBar(
                content=ft.Text(message, color=ft.Colors.WHITE),
                bgcolor=color or EXAM_COLORS['error']
            )
            page.open(snack)
        except Exception as e:
            print(f"[PAGE] Could not show message '{message}': {e}")

    def render_key():
        """Everything except the clock that changes what the screen shows"""
        session = controller.session
        if session is None:
            return (controller.state, controller.result is not None)
        question = session.current_question
        return (
            controller.state,
            session.current_position,
            id(question),
            session.selected_answer,
            len(session.attempted),
            controller.can_submit,
            controller.is_completing,
            controller.is_fullscreen,
            controller.fullscreen_exits,
            controller.current_answer_pending,
        )

    def refresh():
        """Rebuild the screen, or only the clock when nothing else moved"""
        key = render_key()
        if key == ui_state['render_key'] and ui_state['timer_display'] is not None:
            ui_state['timer_display'].value = format_time(controller.time_remaining)
            ui_state['timer_display'].color = timer_color()
        else:
            ui_state['render_key'] = key
            ui_state['main_container'].content = create_main_content()
        update_page()

    def run(handler, *args):
        """Schedule a controller coroutine on the page's event loop"""
        try:
            page.run_task(handler, *args)
        except Exception as e:
            print(f"[PAGE] Could not schedule {getattr(handler, '__name__', handler)}: {e}")

    def timer_color():
        if controller.time_remaining <= 60:
            return EXAM_COLORS['error']
        if controller.time_remaining <= 300:
            return EXAM_COLORS['warning']
        return EXAM_COLORS['text_primary']

    # === Controller observers ===

    def on_error(message):
        show_message(message)

    def on_warning(seconds_left):
        minutes = seconds_left // 60
        unit = "minute" if minutes == 1 else "minutes"
        show_message(f"Warning: {minutes} {unit} remaining!", EXAM_COLORS['warning'])

    def on_exit(reason):
        print(f"[SESSION] Leaving exam view ({reason})")
        close_submit_dialog()
        if reason == PAUSED_EXIT and callable(pause_callback):
            pause_callback()
            return
        refresh()

    def on_complete(result):
        show_results_dialog(result)

    controller.on_change = refresh
    controller.on_error = on_error
    controller.on_warning = on_warning
    controller.on_exit = on_exit
    controller.on_complete = on_complete

    # === Actions ===

    async def load_exam():
        if controller.state is not SessionState.LOADING or ui_state['busy']:
            return
        ui_state['busy'] = True
        try:
            await controller.load()
        finally:
            ui_state['busy'] = False
            refresh()

    async def choose_answer(position, value):
        await controller.select_answer(position, value)

    async def go_previous(e):
        await controller.go_to_previous()

    async def go_next(e):
        await controller.go_to_next()

    async def navigate_to_question(position):
        await controller.jump_to(position)

    async def pause_exam(e):
        if controller.state is SessionState.IN_PROGRESS:
            await controller.pause()

    async def resume_exam(e):
        if controller.state is SessionState.PAUSED:
            await controller.resume()

    async def retry_question(e):
        await controller.reload_question()

    def submit_exam(e):
        """Show confirmation dialog before submitting exam"""
        if not controller.can_submit:
            return
        summary = controller.submission_summary()
        answered, total, unanswered = summary['answered'], summary['total'], summary['unanswered']

        if unanswered > 0:
            content_text = (f"You have answered {answered} out of {total} questions.\n\n"
                            f"{unanswered} questions remain unanswered.\n\n"
                            f"Are you sure you want to submit your exam?")
            title_text = "Submit Exam - Unanswered Questions"
            title_color = EXAM_COLORS['warning']
            title_icon = ft.Icons.WARNING
        else:
            content_text = f"You have answered all {total} questions.\n\nAre you sure you want to submit your exam?"
            title_text = "Submit Exam"
            title_color = EXAM_COLORS['primary']
            title_icon = ft.Icons.SEND

        submit_dialog = ft.AlertDialog(
            modal=True,
            title=ft.Row([
                ft.Icon(title_icon, color=title_color, size=24),
                ft.Text(title_text, color=title_color, weight=ft.FontWeight.BOLD)
            ], spacing=8),
            content=ft.Text(content_text, size=16),
            actions=[
                ft.TextButton("Cancel", on_click=lambda e: close_submit_dialog()),
                ft.ElevatedButton(
                    "Submit Exam",
                    on_click=confirm_submit_exam,
                    style=ft.ButtonStyle(bgcolor=EXAM_COLORS['primary'], color=ft.Colors.WHITE)
                )
            ]
        )
        ui_state['submit_dialog'] = submit_dialog
        try:
            page.open(submit_dialog)
        except Exception as ex:
            print(f"Error showing submit confirmation: {ex}")

    def close_submit_dialog():
        dialog = ui_state['submit_dialog']
        ui_state['submit_dialog'] = None
        if dialog is None:
            return
        try:
            page.close(dialog)
        except Exception as ex:
            print(f"Error closing submit dialog: {ex}")

    async def confirm_submit_exam(e):
        close_submit_dialog()
        await controller.submit()

    def show_results_dialog(result):
        def return_to_dashboard(e):
            try:
                page.close(results_dialog)
            except Exception as ex:
                print(f"Error closing results dialog: {ex}")
            if return_callback and callable(return_callback):
                return_callback(result)

        results_dialog = ft.AlertDialog(
            modal=True,
            title=ft.Row([
                ft.Icon(ft.Icons.CHECK_CIRCLE, color=EXAM_COLORS['success'], size=24),
                ft.Text("Exam Submitted", color=EXAM_COLORS['success'], weight=ft.FontWeight.BOLD)
            ], spacing=8),
            content=ft.Text(summary_text(result), size=16),
            actions=[ft.ElevatedButton("Continue", on_click=return_to_dashboard)]
        )
        try:
            page.open(results_dialog)
        except Exception as ex:
            print(f"Error showing exam results: {ex}")
            if return_callback:
                return_callback(result)

    # === Question rendering ===

    def render_image(image_path, height=220):
        if not image_path:
            return None
        return ft.Container(
            content=ft.Image(src=image_path, fit=ft.ImageFit.CONTAIN, height=height),
            padding=ft.padding.symmetric(vertical=8)
        )

    def create_context_section():
        context = controller.question_context()
        items = []
        if context.section:
            items.append(ft.Text(context.section, size=13, weight=ft.FontWeight.BOLD,
                                 color=EXAM_COLORS['primary']))
        if context.header:
            items.append(ft.Text(context.header, size=14, weight=ft.FontWeight.W_500,
                                 color=EXAM_COLORS['text_secondary']))
        if context.direction:
            if context.direction.text:
                items.append(ft.Text(context.direction.text, size=14, italic=True, selectable=True))
            image = render_image(context.direction.image_path, height=160)
            if image:
                items.append(image)
        if not items:
            return None
        return ft.Container(
            content=ft.Column(items, spacing=6),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['background'],
            border_radius=8,
            border=ft.border.all(1, EXAM_COLORS['border'])
        )

    def create_grid_table(question):
        rows = []
        for row_index, row in enumerate(question.grid_options):
            is_header = row_index == 0
            cells = [ft.Container(
                content=ft.Text(str(cell), weight=ft.FontWeight.BOLD if is_header else None, size=14),
                expand=True,
                padding=ft.padding.all(8)
            ) for cell in row]
            rows.append(ft.Container(
                content=ft.Row(cells, spacing=0),
                bgcolor=EXAM_COLORS['background'] if is_header else None,
                border=ft.border.only(bottom=ft.BorderSide(1, EXAM_COLORS['border']))
            ))
        return ft.Container(content=ft.Column(rows, spacing=0),
                            border=ft.border.all(1, EXAM_COLORS['border']), border_radius=6)

    def create_question_content():
        """Create the current question display"""
        session = controller.session
        question = session.current_question if session else None
        if question is None:
            return ft.Column([
                ft.Row([ft.ProgressRing(width=20, height=20), ft.Text("Loading question...", size=16)],
                       spacing=10),
                ft.TextButton("Retry", icon=ft.Icons.REFRESH, on_click=retry_question),
            ], spacing=12)

        position = session.current_position
        items = []
        context_section = create_context_section()
        if context_section:
            items.append(context_section)

        items.append(ft.Text(question.text, size=18, color=EXAM_COLORS['text_primary'], selectable=True))
        if question.sub_question:
            items.append(ft.Text(question.sub_question, size=16, color=EXAM_COLORS['text_secondary'],
                                 selectable=True))
        image = render_image(question.image_path)
        if image:
            items.append(image)

        choices = question.answer_choices()
        if question.is_grid:
            items.append(create_grid_table(question))
            labels = choices
        elif question.options:
            labels = [f"{letter} {text}" for letter, text in zip(choices, question.options)]
        else:
            labels = choices

        def on_radio_change(e):
            run(choose_answer, position, e.control.value)

        answer_group = ft.RadioGroup(
            content=ft.Column(
                [ft.Radio(value=value, label=label) for value, label in zip(choices, labels)],
                spacing=8
            ),
            value=session.selected_answer,
            on_change=on_radio_change,
            disabled=controller.is_completing or controller.current_answer_pending
        )
        items.append(ft.Container(content=answer_group, padding=ft.padding.only(top=12)))
        return ft.Column(items, spacing=12)

    # === Sidebar ===

    def create_palette():
        buttons = []
        for entry in controller.question_palette():
            # Color priority: current > answered > unanswered
            if entry.state == CURRENT:
                bg_color = EXAM_COLORS['current']
                text_color = ft.Colors.WHITE
            elif entry.state == ANSWERED:
                bg_color = EXAM_COLORS['answered']
                text_color = ft.Colors.WHITE
            else:
                bg_color = EXAM_COLORS['unanswered']
                text_color = EXAM_COLORS['text_primary']

            buttons.append(
                ft.Container(
                    content=ft.Text(str(entry.position), size=11, weight=ft.FontWeight.BOLD, color=text_color),
                    width=32,
                    height=32,
                    bgcolor=bg_color,
                    border_radius=4,
                    alignment=ft.alignment.center,
                    on_click=lambda e, p=entry.position: run(navigate_to_question, p)
                )
            )

        rows = [ft.Row(buttons[i:i + 5], spacing=4) for i in range(0, len(buttons), 5)]
        return ft.Container(
            content=ft.Column([
                ft.Text("Question Navigator", size=14, weight=ft.FontWeight.BOLD),
                ft.Container(height=8),
                ft.Container(content=ft.Column(rows, spacing=6, scroll=ft.ScrollMode.AUTO), height=280)
            ]),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=8
        )

    def legend_row(color, label):
        return ft.Row([
            ft.Container(width=16, height=16, bgcolor=color, border_radius=2),
            ft.Text(label, size=12)
        ], spacing=8)

    def create_sidebar():
        summary = controller.submission_summary()
        timer_display = ft.Text(format_time(controller.time_remaining), size=24,
                                weight=ft.FontWeight.BOLD, color=timer_color())
        ui_state['timer_display'] = timer_display

        timer_section = ft.Container(
            content=ft.Column([
                ft.Row([ft.Icon(ft.Icons.TIMER, size=24), timer_display],
                       alignment=ft.MainAxisAlignment.CENTER, spacing=8),
                ft.Text("Time Remaining", size=12)
            ], horizontal_alignment=ft.CrossAxisAlignment.CENTER, spacing=4),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=8
        )

        progress_overview = ft.Container(
            content=ft.Column([
                ft.Text("Progress Overview", size=14, weight=ft.FontWeight.BOLD),
                ft.Container(height=8),
                ft.Text(f"{summary['answered']} of {summary['total']} answered", size=16,
                        weight=ft.FontWeight.W_500),
                ft.Container(height=8),
                ft.ProgressBar(value=controller.progress / 100, height=8, color=EXAM_COLORS['primary'],
                               bgcolor=EXAM_COLORS['unanswered']),
                ft.Text(f"{controller.progress}% through the exam", size=12,
                        color=EXAM_COLORS['text_secondary'])
            ], spacing=4),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=8
        )

        color_legend = ft.Container(
            content=ft.Column([
                ft.Text("Color Legend", size=14, weight=ft.FontWeight.BOLD),
                ft.Container(height=8),
                ft.Column([
                    legend_row(EXAM_COLORS['current'], "Current Question"),
                    legend_row(EXAM_COLORS['answered'], "Answered"),
                    legend_row(EXAM_COLORS['unanswered'], "Not Answered"),
                ], spacing=6)
            ]),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=8
        )

        submit_button = ft.Container(
            content=ft.ElevatedButton(
                "Submitting..." if controller.is_completing else "Submit Exam",
                width=200,
                height=45,
                on_click=submit_exam,
                disabled=not controller.can_submit,
                style=ft.ButtonStyle(
                    bgcolor=EXAM_COLORS['error'],
                    color=ft.Colors.WHITE,
                    text_style=ft.TextStyle(size=16, weight=ft.FontWeight.BOLD)
                )
            ),
            padding=ft.padding.all(16),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=8,
            alignment=ft.alignment.center
        )

        return ft.Container(
            content=ft.Column([
                timer_section,
                ft.Container(height=20),
                progress_overview,
                ft.Container(height=20),
                create_palette(),
                ft.Container(height=20),
                color_legend,
                ft.Container(height=20),
                submit_button
            ], spacing=0, scroll=ft.ScrollMode.AUTO),
            expand=3,
            padding=ft.padding.only(left=10)
        )

    # === Screens ===

    def create_fullscreen_banner():
        if controller.guard is None or not controller.guard.is_supported:
            return None
        if controller.is_fullscreen:
            icon, color, bgcolor = ft.Icons.LOCK, ft.Colors.BLUE_700, ft.Colors.BLUE_50
            message = "Fullscreen mode locked - Submit or pause the exam to exit"
        elif controller.fullscreen_exits:
            icon, color, bgcolor = ft.Icons.WARNING, ft.Colors.ORANGE_800, ft.Colors.ORANGE_50
            message = f"Fullscreen mode exited ({controller.fullscreen_exits}x). This has been recorded."
        else:
            return None
        return ft.Container(
            content=ft.Row([
                ft.Icon(icon, color=color, size=20),
                ft.Text(message, size=14, color=color, weight=ft.FontWeight.W_500)
            ], spacing=10, alignment=ft.MainAxisAlignment.CENTER),
            bgcolor=bgcolor,
            padding=10,
            border_radius=8,
            border=ft.border.all(1, color)
        )

    def create_header():
        session = controller.session
        exercise = session.exercise if session else None
        title = exercise.title if exercise and exercise.title else "Exam"
        return ft.Container(
            content=ft.Row([
                ft.Row([
                    ft.Icon(ft.Icons.QUIZ, color=EXAM_COLORS['primary'], size=24),
                    ft.Text(title, size=20, weight=ft.FontWeight.BOLD)
                ], spacing=8),
                ft.Row([
                    ft.Text(f"Duration: {controller.entry.display_minutes} min",
                            color=EXAM_COLORS['text_secondary']),
                    ft.IconButton(
                        icon=ft.Icons.PAUSE_CIRCLE,
                        tooltip="Pause exam",
                        on_click=pause_exam,
                        disabled=not controller.can_submit,
                        icon_color=EXAM_COLORS['text_secondary']
                    )
                ], spacing=8)
            ], alignment=ft.MainAxisAlignment.SPACE_BETWEEN),
            padding=ft.padding.symmetric(horizontal=24, vertical=16),
            bgcolor=EXAM_COLORS['surface'],
            border=ft.border.only(bottom=ft.BorderSide(1, EXAM_COLORS['border']))
        )

    def create_status_screen(icon, color, message, action=None):
        controls = [ft.Icon(icon, size=48, color=color), ft.Text(message, size=18, text_align=ft.TextAlign.CENTER)]
        if action is not None:
            controls.append(action)
        return ft.Container(
            content=ft.Column(controls, horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                              alignment=ft.MainAxisAlignment.CENTER, spacing=16),
            alignment=ft.alignment.center,
            expand=True,
            bgcolor=EXAM_COLORS['background']
        )

    def create_main_content():
        """Create main exam content for the current lifecycle state"""
        state = controller.state
        if state is SessionState.LOADING:
            if ui_state['busy']:
                return create_status_screen(ft.Icons.HOURGLASS_TOP, EXAM_COLORS['primary'], "Loading exam...")
            return create_status_screen(
                ft.Icons.ERROR_OUTLINE, EXAM_COLORS['error'],
                controller.last_error or "The exam could not be loaded.",
                ft.ElevatedButton("Retry", icon=ft.Icons.REFRESH, on_click=lambda e: run(load_exam))
            )
        if state is SessionState.PAUSED:
            return create_status_screen(
                ft.Icons.PAUSE_CIRCLE, EXAM_COLORS['warning'],
                f"Exam paused with {format_time(controller.time_remaining)} remaining.",
                ft.ElevatedButton("Resume Exam", icon=ft.Icons.PLAY_ARROW, on_click=resume_exam)
            )
        if state is SessionState.COMPLETED:
            ui_state['timer_display'] = None
            message = summary_text(controller.result) if controller.result else "Exam submitted."
            return create_status_screen(ft.Icons.CHECK_CIRCLE, EXAM_COLORS['success'], message)

        session = controller.session
        total_q = session.total_questions
        current_q = session.current_position

        progress_header = ft.Container(
            content=ft.Row([
                ft.Text(f"Question {current_q} of {total_q}", size=18, weight=ft.FontWeight.BOLD),
                ft.Container(expand=True),
                ft.Text("Saving..." if controller.recorder.has_pending else "",
                        size=14, color=EXAM_COLORS['text_secondary'])
            ], alignment=ft.MainAxisAlignment.SPACE_BETWEEN),
            padding=ft.padding.only(bottom=20)
        )

        navigation = ft.Row([
            ft.ElevatedButton("← Previous", disabled=current_q <= 1, on_click=go_previous),
            ft.Container(expand=True),
            ft.ElevatedButton("Next →", disabled=current_q >= total_q, on_click=go_next)
        ])

        question_card = ft.Container(
            content=create_question_content(),
            padding=ft.padding.all(32),
            bgcolor=EXAM_COLORS['surface'],
            border_radius=12
        )

        main_content = ft.Container(
            content=ft.Column([
                progress_header,
                ft.Container(content=ft.Column([question_card], scroll=ft.ScrollMode.AUTO),
                             expand=True, padding=ft.padding.symmetric(vertical=20)),
                navigation
            ], spacing=0),
            expand=7,
            padding=ft.padding.only(right=10)
        )

        column_controls = [create_header()]
        banner = create_fullscreen_banner()
        if banner:
            column_controls.append(ft.Container(content=banner, padding=ft.padding.symmetric(horizontal=24, vertical=8)))
        column_controls.append(
            ft.Container(
                content=ft.Row([
                    main_content,
                    ft.VerticalDivider(width=1, color=EXAM_COLORS['border']),
                    create_sidebar()
                ], spacing=0),
                expand=True,
                padding=ft.padding.all(24),
                bgcolor=EXAM_COLORS['background']
            )
        )
        return ft.Column(column_controls, spacing=0, expand=True)

    ui_state['busy'] = True
    main_container = ft.Container(content=create_main_content(), expand=True)
    ui_state['main_container'] = main_container
    ui_state['busy'] = False

    run(load_exam)
    return main_container
