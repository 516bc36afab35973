"""Pygame UI shell for the Math Trainer.

Screens:
- Main menu (Marathon, Sprint, Survival, Settings, Quit)
- Settings (operation, operand digits, problem count, sprint duration)
- Quiz (problem, typed answer, progress / countdown)
- Results (score, timing, recent trend, per-problem details)

Deterministic timing/scoring/RNG/state lives in math_trainer/* (core modules);
this module only renders snapshots and forwards keystrokes.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .clock import Clock, RealClock
from .evaluator import AnswerStatus
from .persistence import HistoryStore
from .results import avg_time_trend, total_time_s
from .session import QuizSession, SessionState, build_quiz_session
from .settings import ModeKind, Operation, QuizSettings

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60
FEEDBACK_FLASH_MS = 200

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
ACTIVE_BG = (244, 248, 255)
ACTIVE_TEXT = (14, 26, 74)
GOOD = (120, 220, 140)
BAD = (235, 110, 110)

_MODE_TITLES = {
    ModeKind.MARATHON: "Marathon",
    ModeKind.SPRINT: "Sprint",
    ModeKind.SURVIVAL: "Survival",
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


@dataclass(slots=True)
class SettingsHolder:
    """Settings shared by the menu, settings screen and quiz factory."""

    value: QuizSettings


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._hint_font = pygame.font.Font(None, 22)
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    @property
    def hint_font(self) -> pygame.font.Font:
        return self._hint_font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def replace(self, screen: Screen) -> None:
        if len(self._screens) > 1:
            self._screens[-1] = screen
        else:
            self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _draw_frame(
    surface: pygame.Surface,
    title: str,
    font: pygame.font.Font,
    hint_font: pygame.font.Font,
    tag: str,
) -> pygame.Rect:
    """Panel chrome shared by every screen; returns the content rect."""

    w, h = surface.get_size()
    surface.fill(BG)
    margin = max(10, min(26, w // 34))
    frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, PANEL_BG, frame)
    pygame.draw.rect(surface, BORDER, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, HEADER_BG, header)
    pygame.draw.line(surface, BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    tag_surf = hint_font.render(tag, True, TEXT_MUTED)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = font.render(title, True, TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))

    return pygame.Rect(frame.x + 16, header.bottom + 12, frame.w - 32, frame.bottom - header.bottom - 24)


def _draw_footer(surface: pygame.Surface, content: pygame.Rect, font: pygame.font.Font, text: str) -> None:
    foot = font.render(text, True, TEXT_MUTED)
    surface.blit(foot, foot.get_rect(midbottom=(content.centerx, content.bottom)))


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, self._title, self._title_font, self._app.hint_font, "MENU")
        row_h = 40
        gap = 8
        y = content.y + 8
        for idx, item in enumerate(self._items):
            row = pygame.Rect(content.x + 12, y, content.w - 24, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, ACTIVE_BG, row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = ACTIVE_TEXT if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap
        _draw_footer(surface, content, self._app.hint_font, "Up/Down: Move  |  Enter: Select  |  Esc: Back")


class SettingsScreen:
    _rows = ("Operation", "1st number", "2nd number", "Problem count", "Sprint duration")

    def __init__(self, app: App, *, settings: SettingsHolder) -> None:
        self._app = app
        self._settings = settings
        self._selected = 0
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN, pygame.K_KP_ENTER):
            self._app.pop()
        elif event.key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(self._rows)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(self._rows)
        elif event.key in (pygame.K_LEFT, pygame.K_a):
            self._step(-1)
        elif event.key in (pygame.K_RIGHT, pygame.K_d):
            self._step(1)

    def _step(self, delta: int) -> None:
        s = self._settings.value
        steppers = (
            s.step_operation,
            s.step_first_digits,
            s.step_second_digits,
            s.step_count,
            s.step_duration,
        )
        self._settings.value = steppers[self._selected](delta)

    def _values(self) -> tuple[str, ...]:
        s = self._settings.value
        op = "mixed" if s.operation is Operation.MIXED else s.operation.value
        return (
            op,
            f"{s.first_digits}D",
            f"{s.second_digits}D",
            str(s.count),
            f"{s.duration_s}s",
        )

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, "Configuration", self._title_font, self._app.hint_font, "SETTINGS")
        y = content.y + 8
        for idx, (label, value) in enumerate(zip(self._rows, self._values())):
            color = ACTIVE_TEXT if idx == self._selected else TEXT_MAIN
            row = pygame.Rect(content.x + 12, y, content.w - 24, 40)
            if idx == self._selected:
                pygame.draw.rect(surface, ACTIVE_BG, row)
            surface.blit(self._item_font.render(label, True, color), (row.x + 10, row.y + 8))
            val = self._item_font.render(f"< {value} >", True, color)
            surface.blit(val, (row.right - val.get_width() - 10, row.y + 8))
            y += 48
        _draw_footer(
            surface, content, self._app.hint_font, "Up/Down: Row  |  Left/Right: Change  |  Esc/Enter: Done"
        )


class QuizScreen:
    def __init__(
        self,
        app: App,
        *,
        session_factory: Callable[[], QuizSession],
        history: HistoryStore,
    ) -> None:
        self._app = app
        self._session_factory = session_factory
        self._history = history
        self._session = session_factory()
        self._session.start()
        self._input = ""
        self._flash: AnswerStatus | None = None
        self._flash_until_ms = 0

        self._title_font = pygame.font.Font(None, 42)
        self._big_font = pygame.font.Font(None, 112)
        self._input_font = pygame.font.Font(None, 72)
        self._small_font = pygame.font.Font(None, 28)

    @property
    def session(self) -> QuizSession:
        return self._session

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if self._session.state is not SessionState.ACTIVE:
            return

        if event.key == pygame.K_ESCAPE:
            self._session.abort()
            self._app.pop()
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._after_status(self._session.submit_answer(self._input))
            return
        if event.key in (pygame.K_BACKSPACE, pygame.K_DELETE):
            self._input = self._input[:-1]
        elif event.unicode and (event.unicode.isdigit() or event.unicode in ".-"):
            self._input += event.unicode
        else:
            return
        self._after_status(self._session.input_changed(self._input))

    def _after_status(self, status: AnswerStatus) -> None:
        if status is AnswerStatus.PENDING:
            return
        self._input = ""
        self._flash = status
        self._flash_until_ms = pygame.time.get_ticks() + FEEDBACK_FLASH_MS

    def render(self, surface: pygame.Surface) -> None:
        self._session.tick()
        if self._session.state is SessionState.FINISHED:
            self._show_results()
            return

        snap = self._session.snapshot()
        content = _draw_frame(surface, _MODE_TITLES[snap.mode], self._title_font, self._app.hint_font, "QUIZ")

        bar = pygame.Rect(content.x + 12, content.y + 6, content.w - 24, 8)
        pygame.draw.rect(surface, (40, 52, 130), bar)
        fill = bar.copy()
        fill.w = int(bar.w * max(0.0, min(1.0, snap.progress)))
        pygame.draw.rect(surface, (255, 160, 60) if snap.mode is ModeKind.SPRINT else (90, 150, 255), fill)

        if snap.time_remaining_s is not None:
            status_text = f"Time remaining: {math.ceil(snap.time_remaining_s)}s"
        elif snap.total_questions is not None:
            status_text = f"Question {snap.question_number} / {snap.total_questions}"
        else:
            status_text = f"Question {snap.question_number}"
        surface.blit(self._small_font.render(status_text, True, TEXT_MUTED), (content.x + 12, content.y + 24))
        score = self._small_font.render(f"Score: {snap.score}", True, TEXT_MUTED)
        surface.blit(score, (content.right - score.get_width() - 12, content.y + 24))

        color = TEXT_MAIN
        if self._flash is not None and pygame.time.get_ticks() < self._flash_until_ms:
            color = GOOD if self._flash is AnswerStatus.CORRECT else BAD

        if snap.problem is not None:
            prompt = self._big_font.render(snap.problem.text, True, color)
            surface.blit(prompt, prompt.get_rect(center=(content.centerx, content.y + content.h // 3)))

        answer = self._input_font.render(self._input or "?", True, color)
        box = answer.get_rect(center=(content.centerx, content.y + (content.h * 2) // 3))
        surface.blit(answer, box)
        pygame.draw.line(surface, BORDER, (box.x - 40, box.bottom + 6), (box.right + 40, box.bottom + 6), 3)

        _draw_footer(surface, content, self._app.hint_font, "Type answer  |  Enter: Submit  |  Esc: Abort")

    def _show_results(self) -> None:
        summary = self._session.finalize()
        if summary is not None:
            self._history.append(summary)
        self._app.replace(
            ResultsScreen(
                self._app,
                session=self._session,
                history=self._history,
                session_factory=self._session_factory,
            )
        )


class ResultsScreen:
    def __init__(
        self,
        app: App,
        *,
        session: QuizSession,
        history: HistoryStore,
        session_factory: Callable[[], QuizSession],
    ) -> None:
        self._app = app
        self._session = session
        self._history = history
        self._session_factory = session_factory
        self._trend = avg_time_trend(history.query(session.mode.kind))
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._small_font = pygame.font.Font(None, 24)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._app.replace(
                QuizScreen(self._app, session_factory=self._session_factory, history=self._history)
            )
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._app.pop()
        elif event.key == pygame.K_DELETE:
            self._history.clear()
            self._trend = []
            logger.info("history cleared")

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(surface, "Session Complete", self._title_font, self._app.hint_font, "RESULTS")
        results = self._session.results
        total = total_time_s(results)
        avg = total / len(results) if results else 0.0

        lines = [
            f"Score: {self._session.score} / {len(results)}",
            f"Total time: {round(total)}s",
            f"Avg per question: {avg:.1f}s",
        ]
        if self._trend:
            lines.append("Trend (avg s): " + "  ".join(f"{t:.1f}" for t in self._trend))
        else:
            lines.append("Play more games to see your trend")

        y = content.y + 8
        for line in lines:
            surface.blit(self._item_font.render(line, True, TEXT_MAIN), (content.x + 12, y))
            y += 34

        y += 8
        max_rows = max(0, (content.bottom - 40 - y) // 24)
        for r in results[-max_rows:] if max_rows else ():
            mark = "OK " if r.correct else "X  "
            detail = f"{mark}{r.num1} {r.op} {r.num2} = {r.answer}"
            if not r.correct:
                detail += f"   (you: {r.user_answer})"
            detail += f"   {r.time_s:.1f}s"
            surface.blit(self._small_font.render(detail, True, GOOD if r.correct else BAD), (content.x + 24, y))
            y += 24

        _draw_footer(
            surface, content, self._app.hint_font, "Enter: Play again  |  Del: Clear history  |  Esc: Main menu"
        )


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    history: HistoryStore | None = None,
    clock: Clock | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Math Trainer")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    frame_clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    settings = SettingsHolder(QuizSettings())
    owns_store = history is None
    store = history if history is not None else HistoryStore(HistoryStore.default_path())
    quiz_clock: Clock = clock if clock is not None else RealClock()
    logger.info("history store: %s", store.path)

    def open_quiz(kind: ModeKind) -> None:
        chosen = settings.value

        def factory() -> QuizSession:
            return build_quiz_session(kind, chosen, clock=quiz_clock)

        app.push(QuizScreen(app, session_factory=factory, history=store))

    main_items = [
        MenuItem("Marathon: fixed set of problems", lambda: open_quiz(ModeKind.MARATHON)),
        MenuItem("Sprint: race the clock", lambda: open_quiz(ModeKind.SPRINT)),
        MenuItem("Survival: one mistake ends it", lambda: open_quiz(ModeKind.SURVIVAL)),
        MenuItem("Settings", lambda: app.push(SettingsScreen(app, settings=settings))),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Math Trainer", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            frame_clock.tick(TARGET_FPS)
    finally:
        if owns_store:
            store.close()
        pygame.quit()

    return 0
