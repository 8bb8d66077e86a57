from guildterm.models import Guild
from guildterm.tree import TreeModel

from conftest import OPEN_CHANNEL, OTHER_CHANNEL, make_message


def test_insert_guild_is_idempotent():
    tree = TreeModel()
    assert tree.insert_guild(Guild(1, "one"))
    assert not tree.insert_guild(Guild(1, "one again"))
    assert tree.guild_ids() == [1]


def test_remove_guild_inside_folder():
    tree = TreeModel()
    folder = tree.add_folder("stuff", 0x112233)
    tree.insert_guild(Guild(1, "one"), folder)
    tree.insert_guild(Guild(2, "two"))
    assert folder.color == "#112233"
    assert tree.remove_guild(1)
    assert tree.guild_ids() == [2]
    assert folder.children == []
    assert not tree.remove_guild(1)


def test_insert_message_keeps_newest_first():
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL)
    for mid in (5, 9, 1, 7):
        tree.insert_message(make_message(mid))
    assert [m.message_id for m in tree.messages] == [9, 7, 5, 1]


def test_insert_message_rejects_duplicates_and_other_channels():
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(3)])
    assert tree.insert_message(make_message(3)) == -1
    assert tree.insert_message(make_message(4, channel_id=OTHER_CHANNEL)) == -1
    assert [m.message_id for m in tree.messages] == [3]


def test_open_channel_sorts_and_filters():
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(1), make_message(3), make_message(2, channel_id=OTHER_CHANNEL)])
    assert [m.message_id for m in tree.messages] == [3, 1]


def test_find_and_remove_message():
    tree = TreeModel()
    tree.open_channel(OPEN_CHANNEL, [make_message(1), make_message(2)])
    assert tree.find_message(1)[0] == 1
    assert tree.find_message(99) == (-1, None)
    assert tree.remove_message(OPEN_CHANNEL, 1)
    assert not tree.remove_message(OPEN_CHANNEL, 1)
    assert not tree.remove_message(OTHER_CHANNEL, 2)
