import dataclasses
import json

import pytest

from topicsource.models import Data, NewQuestionInput, Topic


def test_topic_wire_form_uses_contract_field_names() -> None:
    topic = Topic(title="Entropy", source_url="https://example.org/e", topic_id=42, site="wiki")
    assert topic.to_dict() == {
        "title": "Entropy",
        "sourceURL": "https://example.org/e",
        "site": "wiki",
        "topicID": 42,
    }
    assert Topic.from_dict(topic.to_dict()) == topic


def test_data_from_dict_defaults_site_to_unset() -> None:
    data = Data.from_dict({"text": "body", "sourceURL": "https://example.org/a", "answerID": 7})
    assert data.site == ""
    assert data.answer_id == 7
    assert data.to_dict()["answerID"] == 7


def test_from_dict_missing_identifier_is_rejected() -> None:
    with pytest.raises(ValueError):
        Topic.from_dict({"title": "t", "sourceURL": "https://example.org"})


@pytest.mark.parametrize("bad", [True, "12", 1.5])
def test_identifier_must_be_int(bad: object) -> None:
    with pytest.raises(TypeError):
        Topic(title="t", source_url="https://example.org", topic_id=bad)  # type: ignore[arg-type]


def test_identifier_must_fit_in_64_bits() -> None:
    Topic(title="t", source_url="https://example.org", topic_id=2**63 - 1)
    Topic(title="t", source_url="https://example.org", topic_id=-(2**63))
    with pytest.raises(ValueError):
        Data(text="x", source_url="https://example.org", answer_id=2**63)


def test_records_are_immutable() -> None:
    topic = Topic(title="t", source_url="https://example.org", topic_id=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        topic.title = "changed"  # type: ignore[misc]


def test_question_absent_asked_by_differs_from_zero() -> None:
    absent = NewQuestionInput(question_text="q")
    zero = NewQuestionInput(question_text="q", asked_by=0)

    assert not absent.has_asked_by
    assert zero.has_asked_by
    assert absent != zero
    assert "askedBy" not in absent.to_dict()
    assert zero.to_dict()["askedBy"] == 0


def test_question_absence_survives_json_round_trip() -> None:
    absent = NewQuestionInput(question_text="q")
    zero = NewQuestionInput(question_text="q", asked_by=0, embedding=())

    absent_back = NewQuestionInput.from_dict(json.loads(json.dumps(absent.to_dict())))
    zero_back = NewQuestionInput.from_dict(json.loads(json.dumps(zero.to_dict())))

    assert absent_back == absent
    assert absent_back.asked_by is None
    assert absent_back.embedding is None
    assert zero_back == zero
    assert zero_back.asked_by == 0
    assert zero_back.embedding == ()


def test_question_null_fields_read_as_absent() -> None:
    q = NewQuestionInput.from_dict({"questionText": "q", "askedBy": None, "embedding": None})
    assert q.asked_by is None
    assert q.embedding is None
    assert q.tags == ()


def test_question_normalises_sequences_to_tuples() -> None:
    q = NewQuestionInput(question_text="q", tags=["a", "b", "a"], embedding=[1, 0.5])  # type: ignore[arg-type]
    assert q.tags == ("a", "b", "a")
    assert q.embedding == (1.0, 0.5)
    assert q.to_dict()["embedding"] == [1.0, 0.5]


def test_question_tags_reject_a_bare_string() -> None:
    with pytest.raises(TypeError):
        NewQuestionInput(question_text="q", tags="physics")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        NewQuestionInput.from_dict({"questionText": "q", "tags": "physics"})

    assert NewQuestionInput(question_text="q", tags=["physics"]).tags == ("physics",)
