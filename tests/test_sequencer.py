from pathlib import Path

import pytest

from src.core.dto.media import MediaType
from src.core.scheduling import TimerGroup
from src.core.sequencer import (PlaybackPhase, ReloadAction, Sequencer, SequencerConfig,
                                SequencerEventKind, build_sequence)

IMAGE = MediaType.IMAGE
VIDEO = MediaType.VIDEO


@pytest.fixture
def sequencer(scheduler, host):
    seq = Sequencer(scheduler, config=SequencerConfig(), host=host)
    yield seq
    seq.dispose()


@pytest.fixture
def events(sequencer):
    received = []
    sequencer.subscribe(received.append)
    return received


def kinds(events, kind):
    return [e for e in events if e.kind is kind]


# ------------------------------------------------------------------
# Sequence control
# ------------------------------------------------------------------

def test_empty_sequence_is_idle(sequencer):
    sequencer.load([])
    assert sequencer.current_item is None
    assert sequencer.state.phase is PlaybackPhase.IDLE
    assert sequencer.pending_timers == 0
    sequencer.next()
    assert sequencer.state.current_index == 0


def test_images_advance_after_display_time_and_wrap(sequencer, scheduler, make_item):
    sequencer.load([make_item("a", IMAGE), make_item("b", IMAGE)])
    assert sequencer.state.is_playing

    scheduler.advance(6999)
    assert sequencer.state.current_index == 0
    scheduler.advance(1)
    assert sequencer.state.current_index == 1
    scheduler.advance(7000)
    assert sequencer.state.current_index == 0


def test_previous_wraps_to_last(sequencer, make_item):
    sequencer.load([make_item("a"), make_item("b"), make_item("c")])
    sequencer.previous()
    assert sequencer.current_item.id == "c"
    sequencer.next()
    assert sequencer.current_item.id == "a"


def test_advance_rejects_other_steps(sequencer, make_item):
    sequencer.load([make_item("a"), make_item("b")])
    with pytest.raises(ValueError):
        sequencer.advance(2)
    with pytest.raises(ValueError):
        sequencer.advance(0)


def test_manual_advance_restarts_image_timer(sequencer, scheduler, make_item):
    sequencer.load([make_item("a", IMAGE), make_item("b", IMAGE)])
    scheduler.advance(5000)
    sequencer.next()
    assert sequencer.state.current_index == 1

    scheduler.advance(5000)
    assert sequencer.state.current_index == 1
    scheduler.advance(2000)
    assert sequencer.state.current_index == 0


def test_video_ended_advances(sequencer, make_item):
    sequencer.load([make_item("a"), make_item("b", IMAGE)])
    assert sequencer.pending_timers == 0
    sequencer.on_media_ended()
    assert sequencer.current_item.id == "b"
    assert sequencer.pending_timers == 1


def test_single_video_loops_in_place(sequencer, make_item):
    sequencer.load([make_item("only")])
    assert sequencer.should_loop
    sequencer.on_media_ended()
    assert sequencer.state.current_index == 0


def test_single_image_arms_no_timer(sequencer, scheduler, make_item):
    sequencer.load([make_item("only", IMAGE)])
    assert sequencer.pending_timers == 0
    scheduler.advance(60000)
    assert sequencer.state.current_index == 0


def test_item_changed_event_carries_item(sequencer, events, make_item):
    sequencer.load([make_item("a"), make_item("b")])
    sequencer.next()
    changed = kinds(events, SequencerEventKind.ITEM_CHANGED)
    assert [e.item.id for e in changed] == ["a", "b"]


def test_toggle_play_only_for_video(sequencer, make_item):
    sequencer.load([make_item("v"), make_item("i", IMAGE)])
    sequencer.toggle_play()
    assert not sequencer.state.is_playing
    assert sequencer.state.phase is PlaybackPhase.PAUSED
    sequencer.toggle_play()
    assert sequencer.state.is_playing

    sequencer.next()
    sequencer.toggle_play()
    assert sequencer.state.is_playing


def test_failing_listener_does_not_block_others(sequencer, make_item):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    sequencer.subscribe(broken)
    sequencer.subscribe(received.append)
    sequencer.load([make_item("a")])
    assert received


def test_unsubscribe_stops_events(sequencer, make_item):
    received = []
    dispose = sequencer.subscribe(received.append)
    dispose()
    dispose()
    sequencer.load([make_item("a")])
    assert received == []


# ------------------------------------------------------------------
# Video errors
# ------------------------------------------------------------------

def fail_once(sequencer, scheduler):
    sequencer.on_media_error("decode error")
    scheduler.advance(2000)


def test_retry_pauses_then_resumes(sequencer, scheduler, events, make_item):
    sequencer.load([make_item("clip", title="Clip"), make_item("next")])
    sequencer.on_media_error("network")
    assert sequencer.state.retry_attempts == 1
    assert sequencer.state.error_message is None

    scheduler.advance(1000)
    reloads = kinds(events, SequencerEventKind.RELOAD_REQUESTED)
    assert [e.action for e in reloads] == [ReloadAction.PAUSE]
    assert not sequencer.state.is_playing

    scheduler.advance(1000)
    reloads = kinds(events, SequencerEventKind.RELOAD_REQUESTED)
    assert [e.action for e in reloads] == [ReloadAction.PAUSE, ReloadAction.RESUME]
    assert sequencer.state.is_playing
    assert sequencer.state.current_index == 0


def test_retry_messages_count_attempts(sequencer, scheduler, make_item):
    sequencer.load([make_item("clip", title="Clip"), make_item("next")])
    fail_once(sequencer, scheduler)
    sequencer.on_media_error()
    assert sequencer.state.error_message == "Error playing video: Clip (attempt 2)"
    assert sequencer.state.phase is PlaybackPhase.ERROR
    scheduler.advance(2000)
    sequencer.on_media_error()
    assert sequencer.state.error_message == "Error playing video: Clip (attempt 3)"


def test_exhausted_retries_skip_after_delay(sequencer, scheduler, events, make_item):
    sequencer.load([make_item("clip", title="Clip"), make_item("next")])
    for _ in range(3):
        fail_once(sequencer, scheduler)

    sequencer.on_media_error()
    assert sequencer.state.error_message == "Error playing video: Clip"
    failures = kinds(events, SequencerEventKind.PLAYBACK_FAILED)
    assert [e.message for e in failures] == ["Could not play video: Clip"]

    scheduler.advance(2999)
    assert sequencer.state.current_index == 0
    scheduler.advance(1)
    assert sequencer.current_item.id == "next"
    assert sequencer.state.error_message is None
    assert sequencer.state.retry_attempts == 0


def test_errors_after_final_failure_are_ignored(sequencer, scheduler, events, make_item):
    sequencer.load([make_item("clip", title="Clip"), make_item("next")])
    for _ in range(3):
        fail_once(sequencer, scheduler)
    sequencer.on_media_error()

    scheduler.advance(2800)
    sequencer.on_media_error("decoder gave up")
    assert sequencer.state.retry_attempts == 4
    assert len(kinds(events, SequencerEventKind.PLAYBACK_FAILED)) == 1

    scheduler.advance(200)
    assert sequencer.current_item.id == "next"


def test_single_failing_video_is_not_skipped(sequencer, scheduler, make_item):
    sequencer.load([make_item("clip", title="Clip")])
    for _ in range(4):
        fail_once(sequencer, scheduler)
    assert sequencer.state.error_message == "Error playing video: Clip"
    assert sequencer.pending_timers == 0
    scheduler.advance(10000)
    assert sequencer.state.current_index == 0


def test_media_ready_clears_error(sequencer, scheduler, make_item):
    sequencer.load([make_item("clip", title="Clip"), make_item("next")])
    fail_once(sequencer, scheduler)
    sequencer.on_media_error()
    sequencer.on_media_ready()
    assert sequencer.state.error_message is None
    assert sequencer.state.retry_attempts == 0


def test_image_error_keeps_display_timer(sequencer, scheduler, make_item):
    sequencer.load([make_item("a", IMAGE), make_item("b", IMAGE)])
    sequencer.on_media_error("404")
    assert sequencer.state.error_message is None
    scheduler.advance(7000)
    assert sequencer.state.current_index == 1


# ------------------------------------------------------------------
# Full screen and the tap gesture
# ------------------------------------------------------------------

def test_enter_fullscreen_hides_controls(sequencer, host, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    assert host.calls == ["enter"]
    assert sequencer.state.is_fullscreen
    assert not sequencer.state.controls_visible

    sequencer.enter_fullscreen()
    assert host.calls == ["enter"]

    sequencer.toggle_fullscreen()
    assert host.calls == ["enter", "exit"]
    assert not sequencer.state.is_fullscreen
    assert sequencer.state.controls_visible


def test_refused_fullscreen_leaves_state(sequencer, host, make_item):
    host.fail = True
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    assert not sequencer.state.is_fullscreen
    assert sequencer.state.controls_visible


def test_taps_ignored_outside_fullscreen(sequencer, make_item):
    sequencer.load([make_item("a")])
    sequencer.register_tap()
    assert sequencer.state.tap_count == 0


def test_sixth_tap_exits_fullscreen(sequencer, host, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    for _ in range(5):
        sequencer.register_tap()
    assert sequencer.state.tap_count == 5
    assert sequencer.state.is_fullscreen

    sequencer.register_tap()
    assert host.calls == ["enter", "exit"]
    assert not sequencer.state.is_fullscreen
    assert sequencer.state.tap_count == 0


def test_tap_count_resets_after_pause(sequencer, scheduler, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    for _ in range(3):
        sequencer.register_tap()
    scheduler.advance(1999)
    assert sequencer.state.tap_count == 3
    scheduler.advance(1)
    assert sequencer.state.tap_count == 0


def test_sixth_tap_after_gap_does_not_exit(sequencer, scheduler, host, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    for _ in range(5):
        sequencer.register_tap()
    assert sequencer.state.tap_count == 5

    scheduler.advance(2001)
    assert sequencer.state.tap_count == 0

    sequencer.register_tap()
    assert sequencer.state.is_fullscreen
    assert sequencer.state.tap_count == 1
    assert host.calls == ["enter"]


def test_each_tap_extends_reset_window(sequencer, scheduler, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    sequencer.register_tap()
    scheduler.advance(1500)
    sequencer.register_tap()
    scheduler.advance(1500)
    assert sequencer.state.tap_count == 2


def test_tap_reset_survives_item_change(sequencer, scheduler, make_item):
    sequencer.load([make_item("a", IMAGE), make_item("b", IMAGE)])
    sequencer.enter_fullscreen()
    scheduler.advance(6000)
    sequencer.register_tap()
    sequencer.register_tap()

    scheduler.advance(1000)
    assert sequencer.state.current_index == 1
    assert sequencer.state.tap_count == 2

    scheduler.advance(1000)
    assert sequencer.state.tap_count == 0


def test_host_exit_resyncs_state(sequencer, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    sequencer.register_tap()
    sequencer.on_host_fullscreen_exited()
    assert not sequencer.state.is_fullscreen
    assert sequencer.state.controls_visible
    assert sequencer.state.tap_count == 0
    assert sequencer.pending_timers == 0


def test_fullscreen_survives_reload(sequencer, make_item):
    sequencer.load([make_item("a")])
    sequencer.enter_fullscreen()
    sequencer.load([make_item("b"), make_item("c")])
    assert sequencer.state.is_fullscreen
    assert sequencer.state.item_count == 2


# ------------------------------------------------------------------
# Teardown and helpers
# ------------------------------------------------------------------

def test_dispose_cancels_timers_and_listeners(scheduler, host, make_item):
    sequencer = Sequencer(scheduler, host=host)
    received = []
    sequencer.subscribe(received.append)
    sequencer.load([make_item("a", IMAGE), make_item("b", IMAGE)])
    sequencer.enter_fullscreen()
    sequencer.register_tap()
    assert sequencer.pending_timers == 2

    sequencer.dispose()
    count = len(received)
    assert sequencer.pending_timers == 0
    assert scheduler.pending == []

    scheduler.advance(10000)
    sequencer.load([make_item("c")])
    assert len(received) == count
    assert sequencer.state.current_index == 0


def test_playable_url_prefers_canonical_and_local(scheduler, make_item, tmp_path):
    cached = tmp_path / "clip.mp4"
    cached.write_bytes(b"data")
    local = {"https://cdn.example.com/cached.mp4": cached}
    sequencer = Sequencer(scheduler, resolve_local=local.get)

    hosted = make_item("yt", url="https://youtu.be/dQw4w9WgXcQ")
    assert sequencer.playable_url(hosted) == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    on_disk = make_item("cached")
    assert sequencer.playable_url(on_disk) == Path(cached).as_uri()

    remote = make_item("remote")
    assert sequencer.playable_url(remote) == remote.url
    assert sequencer.playable_url() is None


def test_build_sequence_skips_inactive(make_item):
    items = [make_item("a"), make_item("b", active=False), make_item("c")]
    assert [i.id for i in build_sequence(items)] == ["a", "c"]


def test_config_from_db(db):
    db.set_config("image_display_seconds", "5")
    db.set_config("fullscreen_exit_taps", "4")
    db.set_config("video_retry_pause_ms", "250")
    config = SequencerConfig.from_db(db)
    assert config.image_display_ms == 5000
    assert config.tap_exit_threshold == 4
    assert config.retry_pause_ms == 250
    assert config.retry_resume_ms == 250
    assert config.retry_budget == 3


def test_timer_group_keeps_one_timer_per_name(scheduler):
    fired = []
    timers = TimerGroup(scheduler)
    timers.arm("x", 100, lambda: fired.append("first"))
    timers.arm("x", 200, lambda: fired.append("second"))
    timers.arm("y", 50, lambda: fired.append("y"))
    assert len(timers) == 2

    timers.cancel_all(keep=("x",))
    assert not timers.is_armed("y")
    scheduler.advance(300)
    assert fired == ["second"]
    assert len(timers) == 0
