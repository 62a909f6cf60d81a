import pygame
from typing import Any, Iterable, Optional, Tuple

from data.models import FieldItem
from game.rules import RESPONSE_CLICK, RESPONSE_NO_CLICK


def cell_at(pos: Tuple[int, int], grid_rect: pygame.Rect, grid_size: int) -> Optional[int]:
    """Номер клетки сетки grid_size x grid_size под курсором (или None, если мимо)."""
    if grid_size <= 0 or not grid_rect.collidepoint(pos):
        return None
    col = (pos[0] - grid_rect.left) * grid_size // grid_rect.width
    row = (pos[1] - grid_rect.top) * grid_size // grid_rect.height
    return row * grid_size + col


def item_at(
    pos: Tuple[int, int],
    items: Iterable[FieldItem],
    area_rect: pygame.Rect,
    radius: int = 28,
) -> Optional[int]:
    """
    id объекта под курсором.

    Координаты объектов хранятся в процентах игрового поля,
    поэтому сначала переводим их в пиксели area_rect.
    Если объекты перекрываются, берём верхний (последний нарисованный).
    """
    hit = None
    for item in items:
        cx = area_rect.left + area_rect.width * item.x / 100
        cy = area_rect.top + area_rect.height * item.y / 100
        if (pos[0] - cx) ** 2 + (pos[1] - cy) ** 2 <= radius * radius:
            hit = item.item_id
    return hit


class InputManager:
    """
    InputManager это прослойка между pygame и движком.

    Идея:
    - pygame шлёт события (event)
    - клавиши F/SPACE -> "click", J -> "no-click" (Task Switcher)
    - левый клик мыши -> клетка сетки (Memory Matrix) или id объекта на поле
    - GameSession в каждом кадре забирает ответ через poll_action()
    """

    def __init__(self, grid_rect: Optional[pygame.Rect] = None, grid_size: int = 4, area_rect: Optional[pygame.Rect] = None):
        # Последний ответ, который ещё не забрали через poll_action()
        self._last_action: Optional[Any] = None

        self.grid_rect = grid_rect
        self.grid_size = grid_size
        self.area_rect = area_rect
        self.items: Tuple[FieldItem, ...] = ()

        self.key_to_action = {
            pygame.K_f: RESPONSE_CLICK,
            pygame.K_SPACE: RESPONSE_CLICK,
            pygame.K_j: RESPONSE_NO_CLICK,
        }

    def set_items(self, items: Iterable[FieldItem]) -> None:
        """Объекты, которые сейчас на поле (обновлять при каждом новом раунде)."""
        self.items = tuple(items)

    def process_pygame_event(self, event) -> None:
        if event.type == pygame.KEYDOWN:
            if event.key in self.key_to_action:
                self._last_action = self.key_to_action[event.key]
            return

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            action = None
            if self.grid_rect is not None:
                action = cell_at(event.pos, self.grid_rect, self.grid_size)
            if action is None and self.area_rect is not None:
                action = item_at(event.pos, self.items, self.area_rect)
            if action is not None:
                # если за кадр пришло несколько кликов, берём последний
                self._last_action = action

    def poll_action(self) -> Optional[Any]:
        action = self._last_action
        self._last_action = None
        return action

    def reset(self) -> None:
        self._last_action = None
