import pygame

from data.models import FieldItem
from game.input import InputManager, cell_at, item_at


GRID = pygame.Rect(0, 0, 400, 400)
AREA = pygame.Rect(0, 0, 200, 100)


def test_cell_at() -> None:
    assert cell_at((10, 10), GRID, 4) == 0
    assert cell_at((150, 50), GRID, 4) == 1
    assert cell_at((50, 150), GRID, 4) == 4
    assert cell_at((399, 399), GRID, 4) == 15
    assert cell_at((450, 10), GRID, 4) is None


def test_item_at_uses_percent_coordinates() -> None:
    items = [FieldItem(item_id=0, x=50, y=50, is_target=True), FieldItem(item_id=1, x=10, y=20, is_target=False)]
    assert item_at((105, 52), items, AREA) == 0
    assert item_at((20, 20), items, AREA) == 1
    assert item_at((190, 95), items, AREA, radius=5) is None


def test_keys_map_to_switch_responses() -> None:
    manager = InputManager()
    manager.process_pygame_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_f))
    assert manager.poll_action() == "click"
    assert manager.poll_action() is None

    manager.process_pygame_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_j))
    assert manager.poll_action() == "no-click"

    manager.process_pygame_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
    manager.process_pygame_event(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_q))
    assert manager.poll_action() == "click"


def test_mouse_clicks_map_to_cells_and_items() -> None:
    manager = InputManager(grid_rect=GRID, grid_size=4)
    manager.process_pygame_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(399, 0), button=1))
    assert manager.poll_action() == 3

    # правая кнопка не считается
    manager.process_pygame_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(10, 10), button=3))
    assert manager.poll_action() is None

    field = InputManager(area_rect=AREA)
    field.set_items([FieldItem(item_id=7, x=50, y=50, is_target=True)])
    field.process_pygame_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(100, 50), button=1))
    field.reset()
    assert field.poll_action() is None
    field.process_pygame_event(pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(100, 50), button=1))
    assert field.poll_action() == 7
