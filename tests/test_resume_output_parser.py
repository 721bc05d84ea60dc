import pytest

from resume_chat.errors import ResumeParseError
from resume_chat.services.resume_output_parser import (
    extract_json_object,
    parse_resume,
    strip_code_fences,
)


def test_strip_code_fences_json_and_plain():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_extract_json_object_slices_first_to_last_brace():
    text = 'Sure! Here it is: {"name": "A", "experience": [{"company": "X"}]} Hope that helps.'
    assert extract_json_object(text) == '{"name": "A", "experience": [{"company": "X"}]}'


@pytest.mark.parametrize("text", ["", "no json here", "} backwards {"])
def test_extract_json_object_raises_without_object(text):
    with pytest.raises(ResumeParseError):
        extract_json_object(text)


def test_parse_resume_case_insensitive_keys_and_nulls():
    out = parse_resume(
        """```json
        {
          "Name": "Ada",
          "ROLE": "Engineer",
          "Summary": null,
          "Experience": [
            {"Company": "ACME", "Position": "Dev", "From": "2020", "To": "2022", "Description": "Did things"}
          ],
          "Skills": ["Python", null, "Go"]
        }
        ```"""
    )
    assert out.name == "Ada"
    assert out.role == "Engineer"
    assert out.summary == ""
    assert out.experience[0].company == "ACME"
    assert out.experience[0].from_ == "2020"
    assert out.skills == ["Python", "Go"]


def test_parse_resume_tolerates_trailing_commas_and_comments():
    out = parse_resume(
        """{
          "name": "Ada, Countess",  // display name
          "skills": ["a,", "b",],
          /* education left empty */
          "education": [{"degree": "BS", "year": 2020,},],
        }"""
    )
    assert out.name == "Ada, Countess"
    assert out.skills == ["a,", "b"]
    assert out.education[0].year == "2020"


def test_parse_resume_keeps_comment_markers_inside_strings():
    out = parse_resume('{"github": "https://github.com/ada", "summary": "uses /* globs */"}')
    assert out.github == "https://github.com/ada"
    assert out.summary == "uses /* globs */"


def test_parse_resume_invalid_json_raises():
    with pytest.raises(ResumeParseError):
        parse_resume('{"name": "Ada" "role": "x"}')


def test_parse_resume_wrong_shape_raises():
    with pytest.raises(ResumeParseError):
        parse_resume('{"experience": "not a list"}')
