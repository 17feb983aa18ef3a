from mathcamp.autotest.runner import StuckDetector


def test_stuck_detector_same_question_trigger():
    detector = StuckDetector(max_same_question=2)
    assert detector.record("q1") is None
    assert detector.record("q1") is None
    assert detector.record("q1") == 3


def test_stuck_detector_resets_on_new_question():
    detector = StuckDetector(max_same_question=1)
    assert detector.record("q1") is None
    assert detector.record("q2") is None
    assert detector.record("q2") == 2
