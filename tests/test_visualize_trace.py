from visualize_trace import create_trace_map, replay_steps

from conftest import BASE, fix, north_of, step


def test_replay_marks_step_changes():
    steps = [
        step(BASE, "Начните движение"),
        step(north_of(BASE, 170), "Поверните направо"),
        step(north_of(BASE, 1000), "Вы прибыли к месту назначения"),
    ]
    samples = [fix(BASE, 0), fix(north_of(BASE, 80), 1000), fix(north_of(BASE, 170), 2000)]

    reached, approached = replay_steps(samples, steps)

    assert reached == {0: 0, 2: 1}
    assert approached == {1: 1}


def test_create_trace_map(tmp_path):
    trace = [
        {"elapsed": 0, "location": fix(BASE, 0).to_dict()},
        {"elapsed": 3, "location": None, "error": {"code": 3, "message": "timeout"}},
        {"elapsed": 6, "location": fix(north_of(BASE, 30), 6000).to_dict()},
    ]
    output = tmp_path / "trace.html"

    assert create_trace_map(trace, [step(BASE, "Начните движение")], str(output))
    assert output.exists()


def test_empty_trace(tmp_path):
    output = tmp_path / "trace.html"
    assert not create_trace_map([{"elapsed": 0, "location": None}], [], str(output))
    assert not output.exists()
