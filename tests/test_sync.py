import logging

import pytest

from ultimate.logic import MoveRecord, UltimateTicTacToe
from ultimate.sync import (MemoryMoveLog, SyncAdapter, make_entry, parse_entry,
                           new_origin_id)
from ultimate.tasks import ManualQueue


def entry(b, c, symbol, origin):
    return {"subBoardIndex": b, "cellIndex": c, "symbol": symbol, "originId": origin}


def test_entry_round_trip():
    e = make_entry(MoveRecord(3, 5, "O", None, "O"), "peer-a")
    assert e == entry(3, 5, "O", "peer-a")
    assert parse_entry(e) == (3, 5, "O", "peer-a")


@pytest.mark.parametrize("bad", [
    {},
    None,
    entry(9, 0, "X", "a"),
    entry(0, True, "X", "a"),
    entry(0, 0, "x", "a"),
    {"subBoardIndex": 0, "cellIndex": 0, "symbol": "X"},
])
def test_malformed_entries(bad):
    with pytest.raises(ValueError):
        parse_entry(bad)


def test_origin_ids_are_random_tokens():
    a, b = new_origin_id(), new_origin_id()
    assert len(a) == 10 and a != b


def test_log_replays_backlog_then_live_entries():
    log = MemoryMoveLog([entry(4, 4, "X", "a")])
    seen = []
    unsubscribe = log.subscribe(seen.append)
    log.append(entry(4, 0, "O", "b"))
    unsubscribe()
    log.append(entry(0, 0, "X", "a"))
    assert [e["cellIndex"] for e in seen] == [4, 0]
    assert len(log) == 3


def test_appends_from_inside_a_callback_keep_one_order():
    log = MemoryMoveLog()
    first, second = [], []

    def reply(e):
        first.append(e["cellIndex"])
        if e["originId"] == "a":
            log.append(entry(e["cellIndex"], 0, "O", "b"))

    log.subscribe(reply)
    log.subscribe(lambda e: second.append(e["cellIndex"]))
    log.append(entry(4, 4, "X", "a"))
    assert first == second == [4, 0]


def test_two_peers_share_moves():
    log = MemoryMoveLog()
    a_game, b_game = UltimateTicTacToe(), UltimateTicTacToe()
    a = SyncAdapter(a_game, log, origin_id="a")
    b = SyncAdapter(b_game, log, origin_id="b")

    a.publish(a_game.apply_move(4, 4).record)
    assert b_game.boards[4][4] == "X"
    assert len(a_game.move_history) == 1        # own echo ignored

    b.publish(b_game.apply_move(4, 2).record)
    assert a_game.boards[4][2] == "O"
    assert a_game.state() == b_game.state()


def test_self_echo_is_never_applied_twice():
    game = UltimateTicTacToe()
    adapter = SyncAdapter(game, MemoryMoveLog(), origin_id="me")
    game.apply_move(4, 4)
    echo = entry(4, 4, "X", "me")
    assert adapter.ingest(echo) is None
    assert adapter.ingest(echo) is None
    assert len(game.move_history) == 1


def test_illegal_remote_move_is_logged_and_lost(caplog):
    game = UltimateTicTacToe()
    applied = []
    adapter = SyncAdapter(game, MemoryMoveLog(), origin_id="me", on_applied=applied.append)
    assert adapter.ingest(entry(4, 4, "X", "them")) is not None
    with caplog.at_level(logging.WARNING, logger="ultimate.sync"):
        # Arrived after a move it did not see: now aimed at the wrong board.
        assert adapter.ingest(entry(0, 0, "O", "them")) is None
    assert "dropping remote move" in caplog.text
    assert len(applied) == 1
    assert game.boards[0][0] is None


def test_malformed_log_entry_is_dropped(caplog):
    game = UltimateTicTacToe()
    adapter = SyncAdapter(game, MemoryMoveLog(), origin_id="me")
    with caplog.at_level(logging.WARNING, logger="ultimate.sync"):
        assert adapter.ingest({"subBoardIndex": 4}) is None
    assert "dropping log entry" in caplog.text


def test_ingestion_waits_for_the_owners_queue():
    log = MemoryMoveLog()
    queue = ManualQueue()
    game = UltimateTicTacToe()
    SyncAdapter(game, log, origin_id="me", submit=queue.submit)
    log.append(entry(4, 4, "X", "them"))
    assert game.filled_cells() == 0
    queue.run_pending()
    assert game.boards[4][4] == "X"


def test_close_stops_delivery():
    log = MemoryMoveLog()
    game = UltimateTicTacToe()
    adapter = SyncAdapter(game, log, origin_id="me")
    adapter.close()
    log.append(entry(4, 4, "X", "them"))
    assert game.filled_cells() == 0
