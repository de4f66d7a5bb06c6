from triage_engine.triage.domain import Classification


def test_well_formed_payload_is_kept():
    c = Classification.from_json(
        '{"is_question": true, "needs_reply": false, "followup": true, '
        '"urgency_score": 0.7, "topics": ["billing"], "entities": {"who": "sam"}, '
        '"sentiment": -0.2}'
    )

    assert c.is_question is True
    assert c.followup is True
    assert c.urgency_score == 0.7
    assert c.topics == ["billing"]
    assert c.entities == {"who": "sam"}
    assert c.sentiment == -0.2
    assert c.needs_followup


def test_malformed_output_is_neutral():
    for raw in ["", "not json", "[1, 2]", "null", "```json\n{broken\n```"]:
        assert Classification.from_json(raw) == Classification.neutral()


def test_wrong_types_fall_back_per_field():
    c = Classification.from_payload({
        "is_question": "yes",
        "needs_reply": 1,
        "followup": True,
        "urgency_score": True,
        "topics": ["a", 3, None, "b"],
        "entities": ["not", "a", "mapping"],
        "sentiment": float("nan"),
    })

    assert c.is_question is False
    assert c.needs_reply is False
    assert c.followup is True
    assert c.urgency_score == 0.0
    assert c.topics == ["a", "b"]
    assert c.entities is None
    assert c.sentiment is None


def test_fenced_reply_is_parsed():
    c = Classification.from_json('```json\n{"is_question": true}\n```')
    assert c.is_question is True
    assert c.urgency_score == 0.0


def test_neutral_needs_no_followup():
    assert not Classification.neutral().needs_followup


def test_integer_too_large_for_float_is_ignored():
    c = Classification.from_json('{"is_question": true, "urgency_score": 1' + "0" * 400 + "}")

    assert c.is_question is True
    assert c.urgency_score == 0.0


def test_deeply_nested_reply_is_neutral():
    assert Classification.from_json("[" * 100000 + "]" * 100000) == Classification.neutral()
