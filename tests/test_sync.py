import random

from guildterm.permissions import Permission

from conftest import ME, OPEN_CHANNEL, OTHER_CHANNEL, message_payload


def ready_payload(guilds, folders=None, **extra):
    payload = {"user": {"id": str(ME), "username": "me"}, "guilds": guilds}
    if folders is not None:
        payload["user_settings"] = {"guild_folders": folders}
    payload.update(extra)
    return payload


def guild(gid, name=None, **extra):
    payload = {"id": str(gid), "name": name or f"guild{gid}"}
    payload.update(extra)
    return payload


def labels(node):
    return [(child.kind, child.label) for child in node.children]


def test_ready_builds_folders_in_payload_order(ctx):
    folders = [
        {"id": None, "guild_ids": ["1"]},
        {"id": 77, "name": "Games", "color": 0x00FF00, "guild_ids": ["3", "2"]},
        {"id": 0, "guild_ids": ["4"]},
    ]
    assert ctx.sync.apply("READY", ready_payload([guild(1), guild(2), guild(3), guild(4)], folders))

    root = ctx.tree.root
    assert labels(root) == [("guild", "guild1"), ("folder", "Games"), ("guild", "guild4")]
    games = root.children[1]
    assert games.color == "#00FF00"
    assert labels(games) == [("guild", "guild3"), ("guild", "guild2")]
    assert ctx.permissions.user_id == ME


def test_ready_unnamed_folder_gets_defaults(ctx):
    folders = [{"id": 5, "guild_ids": ["1"]}]
    ctx.sync.apply("READY", ready_payload([guild(1)], folders))
    folder = ctx.tree.root.children[0]
    assert (folder.label, folder.color) == ("Folder", "#ED4245")


def test_ready_without_folders_keeps_guild_order(ctx):
    ctx.sync.apply("READY", ready_payload([guild(3), guild(1), guild(2)]))
    assert ctx.tree.guild_ids() == [3, 1, 2]


def test_ready_skips_unknown_guild_ids(ctx):
    folders = [{"id": None, "guild_ids": ["1", "999"]}]
    ctx.sync.apply("READY", ready_payload([guild(1)], folders))
    assert ctx.tree.guild_ids() == [1]


def test_ready_reads_user_account_guild_properties(ctx):
    raw = {"id": "8", "properties": {"name": "lazy"}}
    ctx.sync.apply("READY", ready_payload([raw]))
    assert ctx.tree.root.children[0].label == "lazy"


def test_incremental_variant_inserts_on_guild_create(ctx):
    ctx.sync.snapshot = False
    assert not ctx.sync.apply("READY", ready_payload([guild(1)]))
    assert ctx.tree.guild_ids() == []
    assert ctx.permissions.user_id == ME

    ctx.sync.apply("GUILD_CREATE", guild(2))
    ctx.sync.apply("GUILD_CREATE", guild(1))
    assert ctx.tree.guild_ids() == [2, 1]


def test_guild_create_twice_yields_one_node(ctx):
    assert ctx.sync.apply("GUILD_CREATE", guild(1))
    assert not ctx.sync.apply("GUILD_CREATE", guild(1))
    assert ctx.tree.guild_ids() == [1]


def test_unavailable_guild_create_is_ignored(ctx):
    assert not ctx.sync.apply("GUILD_CREATE", {"id": "1", "unavailable": True})
    assert ctx.tree.guild_ids() == []


def test_guild_create_records_permissions(ctx):
    ctx.permissions.user_id = ME
    payload = guild(
        1,
        owner_id="5",
        roles=[{"id": "1", "permissions": str(int(Permission.SEND_MESSAGES))}],
        members=[{"user": {"id": str(ME)}, "roles": []}],
    )
    ctx.sync.apply("GUILD_CREATE", payload)
    assert ctx.permissions.access[1].owner_id == 5


def test_guild_delete_searches_whole_tree(ctx):
    folders = [{"id": 9, "name": "f", "guild_ids": ["1", "2"]}]
    ctx.sync.apply("READY", ready_payload([guild(1), guild(2)], folders))
    assert ctx.sync.apply("GUILD_DELETE", {"id": "2"})
    assert ctx.tree.guild_ids() == [1]
    assert not ctx.sync.apply("GUILD_DELETE", {"id": "2"})


def test_guild_update_renames(ctx):
    ctx.sync.apply("GUILD_CREATE", guild(1))
    assert ctx.sync.apply("GUILD_UPDATE", {"id": "1", "name": "renamed"})
    assert ctx.tree.root.children[0].label == "renamed"
    assert not ctx.sync.apply("GUILD_UPDATE", {"id": "2", "name": "ghost"})


def test_message_for_open_channel_appends_and_scrolls(ctx, surface):
    ctx.tree.open_channel(OPEN_CHANNEL)
    assert ctx.sync.apply("MESSAGE_CREATE", message_payload(1))
    assert surface.calls == [("append_line", 1), ("scroll_to_latest",)]
    assert [m.message_id for m in ctx.tree.messages] == [1]


def test_message_does_not_scroll_while_highlighted(ctx, surface):
    ctx.tree.open_channel(OPEN_CHANNEL)
    ctx.sync.apply("MESSAGE_CREATE", message_payload(1))
    ctx.navigation.select_last()
    surface.calls.clear()

    ctx.sync.apply("MESSAGE_CREATE", message_payload(2))
    assert "scroll_to_latest" not in surface.names()
    # The selection follows the message it was on.
    assert ctx.navigation.selected.message_id == 1
    assert ctx.navigation.selected_index == 1


def test_message_for_other_channel_is_dropped(ctx, surface):
    ctx.tree.open_channel(OPEN_CHANNEL)
    assert not ctx.sync.apply("MESSAGE_CREATE", message_payload(1, channel_id=OTHER_CHANNEL))
    assert ctx.tree.messages == []
    assert surface.calls == []


def test_buffer_sorted_descending_after_any_order(ctx):
    ctx.tree.open_channel(OPEN_CHANNEL)
    ids = list(range(1, 40))
    random.Random(7).shuffle(ids)
    for mid in ids:
        ctx.sync.apply("MESSAGE_CREATE", message_payload(mid))
    got = [m.message_id for m in ctx.tree.messages]
    assert got == sorted(ids, reverse=True)


def test_out_of_order_message_rerenders(ctx, surface):
    ctx.tree.open_channel(OPEN_CHANNEL)
    ctx.sync.apply("MESSAGE_CREATE", message_payload(5))
    surface.calls.clear()
    ctx.sync.apply("MESSAGE_CREATE", message_payload(3))
    assert surface.calls[0] == ("reset", [3, 5])


def test_malformed_event_is_dropped_and_stream_continues(ctx):
    ctx.tree.open_channel(OPEN_CHANNEL)
    bad = message_payload(1)
    del bad["author"]
    assert not ctx.sync.apply("MESSAGE_CREATE", bad)
    assert not ctx.sync.apply("MESSAGE_CREATE", {"id": "not-a-number", "channel_id": "10"})
    assert not ctx.sync.apply("GUILD_CREATE", ["not", "an", "object"])
    assert not ctx.sync.apply("READY", {"guilds": []})
    assert ctx.sync.apply("MESSAGE_CREATE", message_payload(2))
    assert [m.message_id for m in ctx.tree.messages] == [2]


def test_malformed_ready_leaves_tree_untouched(ctx):
    ctx.sync.apply("GUILD_CREATE", guild(1))
    folders = [{"id": 3, "guild_ids": ["1", "bogus"]}]
    assert not ctx.sync.apply("READY", ready_payload([guild(1)], folders))
    assert ctx.tree.guild_ids() == [1]
    assert ctx.tree.root.children[0].kind == "guild"


def test_unknown_event_is_ignored(ctx):
    assert not ctx.sync.apply("TYPING_START", {"channel_id": "10"})


def test_message_delete_removes_and_keeps_selection(ctx):
    ctx.tree.open_channel(OPEN_CHANNEL)
    for mid in (1, 2, 3):
        ctx.sync.apply("MESSAGE_CREATE", message_payload(mid))
    ctx.navigation.select_first()  # oldest, id 1
    assert ctx.sync.apply("MESSAGE_DELETE", {"id": "3", "channel_id": str(OPEN_CHANNEL)})
    assert [m.message_id for m in ctx.tree.messages] == [2, 1]
    assert ctx.navigation.selected.message_id == 1
    assert ctx.surface.has_highlight


def test_deleting_selected_message_clears_selection(ctx):
    ctx.tree.open_channel(OPEN_CHANNEL)
    for mid in (1, 2):
        ctx.sync.apply("MESSAGE_CREATE", message_payload(mid))
    ctx.navigation.select_last()
    ctx.sync.apply("MESSAGE_DELETE", {"id": "2", "channel_id": str(OPEN_CHANNEL)})
    assert ctx.navigation.selected_index == -1
    assert not ctx.surface.has_highlight


def test_listeners_fire_only_on_change(ctx):
    seen = []
    ctx.sync.listeners.append(seen.append)
    ctx.sync.apply("GUILD_CREATE", guild(1))
    ctx.sync.apply("GUILD_CREATE", guild(1))
    assert seen == ["GUILD_CREATE"]


def test_backslashed_markers_render_through_sync(ctx, surface):
    ctx.tree.open_channel(OPEN_CHANNEL)
    assert ctx.sync.apply("MESSAGE_CREATE", message_payload(5, content=r"\*shrug*"))
    assert ctx.sync.apply("MESSAGE_CREATE", message_payload(3, content="a\\ **b\\**"))
    assert [m.message_id for m in ctx.tree.messages] == [5, 3]
    assert surface.plain[5].endswith("\\shrug")
    assert surface.plain[3].endswith("a\\ b\\")
