import pytest

from healthcare_pro.services import input_validator as iv
from healthcare_pro.utils.exceptions import EmergencyDetected, ValidationError


def test_acceptable_description():
    verdict = iv.classify("I have had a mild headache for two days")
    assert verdict.acceptable is True
    assert verdict.emergency_flag is False
    assert verdict.category == iv.ACCEPTABLE
    assert verdict.message is None


@pytest.mark.parametrize("text", [None, "", "   ", 42])
def test_empty_or_non_text_is_invalid(text):
    verdict = iv.classify(text)
    assert verdict.acceptable is False
    assert verdict.category == iv.INVALID


def test_length_bounds():
    rules = iv.get_rules()
    assert iv.classify("ab").message == rules.messages["too_short"]
    assert iv.classify("sore throat " * 200).message == rules.messages["too_long"]
    # exactly at the upper bound is still accepted
    text = ("sore throat " * 200)[: rules.max_chars - 1] + "x"
    assert len(text) == rules.max_chars
    assert iv.classify(text).acceptable is True


def test_single_word_is_rejected():
    verdict = iv.classify("headache")
    assert verdict.acceptable is False
    assert verdict.message == iv.get_rules().messages["too_few_words"]


def test_emergency_wins_over_other_rules():
    verdict = iv.classify("I have CHEST PAIN and wtf is going on")
    assert verdict.emergency_flag is True
    assert verdict.acceptable is True
    assert verdict.category == iv.EMERGENCY


def test_curly_apostrophe_still_matches_emergency():
    assert iv.classify("I can’t breathe properly").emergency_flag is True


def test_inappropriate_and_spam():
    assert iv.classify("aaaaaaa bbbbbbb").category == iv.INAPPROPRIATE
    assert iv.classify("asdf qwerty zxcv").category == iv.INAPPROPRIATE


def test_unrelated_content():
    assert iv.classify("please help with my calculus homework").category == iv.UNRELATED


def test_ensure_acceptable_raises():
    with pytest.raises(EmergencyDetected) as exc:
        iv.ensure_acceptable("I think I am having a heart attack")
    assert exc.value.details["emergency_flag"] is True

    with pytest.raises(ValidationError) as exc:
        iv.ensure_acceptable("ab")
    assert exc.value.status_code == 422

    assert iv.ensure_acceptable("runny nose and sneezing").acceptable


def test_rules_file_loads():
    rules = iv.load_rules()
    assert rules.min_chars == 3
    assert rules.max_chars == 2000
    assert "chest pain" in rules.emergency_phrases
