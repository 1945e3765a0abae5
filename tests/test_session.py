from dogfight.game.registry import SessionRegistry
from dogfight.game.session import CombatState, Session
from dogfight.game.world import Vec3


def make_session(sid="s1"):
    return Session(session_id=sid, transport=None, position=Vec3(0.0, 100.0, 0.0))


def test_defaults():
    s = make_session()
    assert s.health == 100
    assert s.state is CombatState.ALIVE
    assert not s.is_destroyed
    assert s.stats.kills == 0 and s.stats.deaths == 0
    assert s.stats.join_time == s.join_time
    assert s.public_state()["position"] == {"x": 0.0, "y": 100.0, "z": 0.0}


def test_mark_destroyed_fires_once():
    s = make_session()
    assert s.mark_destroyed() is True
    assert s.health == 0
    assert s.mark_destroyed() is False


def test_respawn_always_restores_full_health():
    for start in (0, 1, 55, 100):
        s = make_session()
        s.set_health(start)
        s.respawn(position=Vec3(1.0, 2.0, 3.0))
        assert s.health == 100
        assert s.is_destroyed is False
        assert s.position == Vec3(1.0, 2.0, 3.0)


def test_set_health_clamps_and_destroys_at_zero():
    s = make_session()
    s.set_health(250)
    assert s.health == 100
    s.set_health(-5)
    assert s.health == 0
    assert s.is_destroyed


def test_report_is_sparse():
    s = make_session()
    s.apply_report(rotation=Vec3(0.1, 0.2, 0.3))
    assert s.rotation == Vec3(0.1, 0.2, 0.3)
    assert s.position == Vec3(0.0, 100.0, 0.0)
    assert s.health == 100


def test_report_cannot_revive_destroyed_session():
    s = make_session()
    s.mark_destroyed()
    s.apply_report(position=Vec3(5.0, 5.0, 5.0), health=100, is_destroyed=False)
    assert s.position == Vec3(5.0, 5.0, 5.0)
    assert s.health == 0
    assert s.is_destroyed


def test_self_reported_crash_has_no_kill_credit():
    s = make_session()
    s.apply_report(is_destroyed=True)
    assert s.is_destroyed and s.health == 0
    assert s.stats.deaths == 0


def test_registry_operations():
    reg = SessionRegistry()
    a, b = make_session("a"), make_session("b")
    reg.register(a)
    reg.register(b)
    assert reg.size() == 2
    assert reg.get("a") is a
    assert reg.get("zzz") is None

    for s in reg:
        reg.unregister(s.session_id)
    assert reg.size() == 0
    assert reg.unregister("a") is None


def test_registry_regenerates_colliding_id():
    reg = SessionRegistry()
    reg.register(make_session("dup"))
    second = reg.register(make_session("dup"))
    assert second.session_id != "dup"
    assert len(reg) == 2
