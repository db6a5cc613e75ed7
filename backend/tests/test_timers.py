import pytest

from badcards.game.timers import RoundTimers, TimerHandle


def play_first_card(manager, room, player_id):
    player = room.find_player(player_id)
    manager.play_cards(room.id, player_id, [player.hand[0].id])


def expire(manager, clock, room):
    handle = manager.timers.get(room.id)
    clock.now = handle.ends_at_ms
    manager.handle_timer_tick(handle)
    return handle


@pytest.fixture()
def events(manager):
    seen = []
    manager.on_room_mutated(lambda room, reason: seen.append((room.id, reason)))
    return seen


def test_handle_remaining_rounds_up():
    handle = TimerHandle(room_id="r", round_id="x", phase="playing", ends_at_ms=10_000)

    assert handle.remaining(0) == 10
    assert handle.remaining(9_001) == 1
    assert handle.remaining(10_000) == 0
    assert handle.remaining(12_000) == 0


def test_starting_a_timer_replaces_the_previous_one():
    timers = RoundTimers(on_tick=lambda h: None, clock=lambda: 0)

    first = timers.start("room", "r1", "playing", 30)
    second = timers.start("room", "r1", "judging", 60)

    assert first.cancelled
    assert not second.cancelled
    assert timers.get("room") is second
    assert len(timers) == 1
    assert not timers.is_live(first)
    assert timers.is_live(second)


def test_cancel_all_is_idempotent():
    timers = RoundTimers(on_tick=lambda h: None, clock=lambda: 0)
    a = timers.start("a", "r", "playing", 30)
    b = timers.start("b", "r", "playing", 30)

    assert timers.cancel_all() == 2
    assert timers.cancel_all() == 0
    assert a.cancelled and b.cancelled
    assert timers.cancel("a") is False


def test_tick_recomputes_remaining_time(seat, manager, clock, events):
    room, _ = seat("Alice", "Bob", "Carol", start=True)
    handle = manager.timers.get(room.id)

    clock.advance(10.2)
    manager.handle_timer_tick(handle)

    assert room.current_round.time_remaining == 35
    assert events == [(room.id, "timer:tick")]

    assert manager.timers.get(room.id) is handle


def test_playing_timeout_with_plays_moves_to_judging(seat, manager, clock, events):
    room, ids = seat("Alice", "Bob", "Carol", "Dave", start=True)
    play_first_card(manager, room, ids["Bob"])

    old = expire(manager, clock, room)

    rnd = room.current_round
    assert old.cancelled
    assert rnd.round_number == 1
    assert rnd.phase == "judging"
    assert rnd.time_remaining == room.settings.judge_timer
    assert manager.timers.get(room.id).phase == "judging"
    assert events[-1] == (room.id, "timer:timeout")


def test_playing_timeout_without_plays_voids_round(seat, manager, clock):
    room, ids = seat("Alice", "Bob", "Carol", start=True)
    first = room.current_round

    expire(manager, clock, room)

    assert first.phase == "completed"
    assert first.winning_player_id is None
    rnd = room.current_round
    assert rnd.round_number == 2
    assert rnd.judge_id == ids["Bob"]
    assert rnd.phase == "playing"
    assert manager.timers.get(room.id).round_id == rnd.id


def test_judging_timeout_picks_random_winner(seat, manager, clock):
    room, ids = seat("Alice", "Bob", "Carol", "Dave", start=True)
    for name in ("Bob", "Carol", "Dave"):
        play_first_card(manager, room, ids[name])
    first = room.current_round

    expire(manager, clock, room)

    assert first.phase == "completed"
    assert first.winning_player_id in {ids["Bob"], ids["Carol"], ids["Dave"]}
    winner = room.find_player(first.winning_player_id)
    assert winner.score == 1
    assert sum(p.score for p in room.players) == 1
    assert room.status == "active"
    assert room.current_round.round_number == 2


def test_judging_timeout_without_plays_starts_next_round(seat, manager, clock):
    room, _ = seat("Alice", "Bob", "Carol", start=True)
    rnd = room.current_round
    rnd.phase = "judging"
    manager.timers.start(room.id, rnd.id, "judging", room.settings.judge_timer)

    expire(manager, clock, room)

    assert rnd.phase == "completed"
    assert room.current_round.round_number == 2
    assert all(p.score == 0 for p in room.players)


def test_forced_win_ends_game(seat, manager, clock):
    room, ids = seat("Alice", "Bob", "Carol", max_score=1, start=True)
    play_first_card(manager, room, ids["Bob"])
    play_first_card(manager, room, ids["Carol"])
    rnd = room.current_round

    expire(manager, clock, room)

    assert room.status == "finished"
    assert room.current_round is None
    assert rnd.phase == "completed"
    assert room.find_player(rnd.winning_player_id).score == 1
    assert manager.timers.get(room.id) is None


def test_stale_timeout_after_judge_decision_is_ignored(seat, manager, clock, events):
    room, ids = seat("Alice", "Bob", "Carol", start=True)
    play_first_card(manager, room, ids["Bob"])
    play_first_card(manager, room, ids["Carol"])
    judging_handle = manager.timers.get(room.id)
    manager.judge_play(room.id, ids["Alice"], ids["Carol"])

    clock.now = judging_handle.ends_at_ms
    manager.handle_timer_tick(judging_handle)

    assert room.current_round.phase == "results"
    assert room.find_player(ids["Carol"]).score == 1
    assert room.find_player(ids["Bob"]).score == 0
    assert events == []


def test_superseded_playing_timer_is_ignored(seat, manager, clock):
    room, ids = seat("Alice", "Bob", "Carol", start=True)
    playing_handle = manager.timers.get(room.id)
    play_first_card(manager, room, ids["Bob"])
    play_first_card(manager, room, ids["Carol"])

    clock.now = playing_handle.ends_at_ms
    manager.handle_timer_tick(playing_handle)

    assert room.current_round.phase == "judging"
    assert manager.timers.get(room.id).phase == "judging"


def test_tick_for_deleted_room_is_ignored(seat, manager, clock):
    room, _ = seat("Alice", "Bob", "Carol", start=True)
    handle = manager.timers.get(room.id)
    manager.delete_room(room.id)

    clock.now = handle.ends_at_ms
    manager.handle_timer_tick(handle)

    assert handle.cancelled
    assert len(manager.timers) == 0


def test_background_countdown_runs_until_timeout(timed_manager, runner, clock):
    seen = []
    timed_manager.on_room_mutated(lambda room, reason: seen.append(reason))
    room, host_id = timed_manager.create_room("R", "Alice")
    timed_manager.join_room(room.id, "Bob")
    timed_manager.join_room(room.id, "Carol")
    timed_manager.start_game(room.id, host_id)
    assert len(runner.tasks) == 1

    runner.run_next()

    assert seen.count("timer:tick") == room.settings.round_timer - 1
    assert seen[-1] == "timer:timeout"
    assert room.current_round.round_number == 2
    # The next round's countdown was scheduled as a fresh task.
    assert len(runner.tasks) == 1


def test_background_countdown_stops_when_cancelled(timed_manager, runner):
    room, host_id = timed_manager.create_room("R", "Alice")
    timed_manager.join_room(room.id, "Bob")
    timed_manager.join_room(room.id, "Carol")
    timed_manager.start_game(room.id, host_id)
    timed_manager.shutdown()

    runner.run_next()

    assert room.current_round.round_number == 1
    assert room.current_round.time_remaining == room.settings.round_timer
