import pytest

from guildterm.navigation import UNSELECTED, NavigationStateMachine
from guildterm.tree import TreeModel

from conftest import OPEN_CHANNEL, RecordingSurface, make_message


@pytest.fixture
def nav(surface):
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(mid) for mid in (1, 2, 3, 4)])
    return NavigationStateMachine(tree, surface)


def selected_id(nav):
    message = nav.selected
    return message.message_id if message else None


def test_empty_buffer_is_a_no_op(surface):
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL)
    nav = NavigationStateMachine(tree, surface)
    for step in (nav.select_previous, nav.select_next, nav.select_first, nav.select_last):
        step()
    assert nav.selected_index == UNSELECTED
    assert "highlight" not in surface.names()


def test_first_press_lands_on_newest(nav):
    nav.select_previous()
    assert nav.selected_index == 0
    assert selected_id(nav) == 4

    nav.clear()
    nav.select_next()
    assert selected_id(nav) == 4


def test_previous_walks_older_and_wraps(nav):
    nav.select_previous()
    seen = []
    for _ in range(4):
        nav.select_previous()
        seen.append(selected_id(nav))
    assert seen == [3, 2, 1, 4]
    assert nav.selected_index == 0


def test_next_from_newest_wraps_to_oldest(nav):
    nav.select_last()
    nav.select_next()
    assert selected_id(nav) == 1
    nav.select_next()
    assert selected_id(nav) == 2


def test_first_and_last(nav, surface):
    nav.select_first()
    assert selected_id(nav) == 1
    nav.select_last()
    assert selected_id(nav) == 4
    assert surface.calls[-2:] == [("highlight", 4), ("scroll_to_highlight",)]


def test_select_reply_of_loaded_target(surface):
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(1), make_message(2), make_message(3, reply_to=1)])
    nav = NavigationStateMachine(tree, surface)
    nav.select_last()
    assert nav.select_reply_of()
    assert selected_id(nav) == 1


def test_select_reply_of_missing_target_does_nothing(surface):
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(2), make_message(3, reply_to=1)])
    nav = NavigationStateMachine(tree, surface)
    nav.select_last()
    assert not nav.select_reply_of()
    assert selected_id(nav) == 3


def test_select_reply_of_without_selection(nav):
    assert not nav.select_reply_of()


def test_clear_drops_highlight(nav, surface):
    nav.select_last()
    nav.clear()
    assert nav.selected_index == UNSELECTED
    assert not surface.has_highlight


def test_channel_switch_resets_selection(nav):
    nav.select_first()
    nav.tree.open_channel(OPEN_CHANNEL + 1, [make_message(9, channel_id=OPEN_CHANNEL + 1)])
    assert nav.selected is None
    nav.select_previous()
    assert selected_id(nav) == 9


def test_insert_keeps_selection_on_same_message(nav):
    nav.select_first()
    nav.on_inserted(nav.tree.insert_message(make_message(5)))
    assert selected_id(nav) == 1
    assert nav.selected_index == 4


def test_shrunk_buffer_clears_out_of_range_selection():
    surface = RecordingSurface()
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(1), make_message(2)])
    nav = NavigationStateMachine(tree, surface)
    nav.select_first()
    tree.remove_message(OPEN_CHANNEL, 2)
    tree.remove_message(OPEN_CHANNEL, 1)
    assert nav.selected is None
