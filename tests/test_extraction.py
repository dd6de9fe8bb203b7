from __future__ import annotations

from conftest import profile_html
from profile_scraper_pkg.extraction import extract_profile, parse_count, sanitize_count
from profile_scraper_pkg.models import ExtractionStatus, compute_extraction_status
from profile_scraper_pkg.selectors import COUNT_RULES, plausible_location

URL = "https://www.linkedin.com/in/alice"


def test_complete_top_card_is_success():
    debug = []
    record = extract_profile(profile_html(), url=URL, debug=debug)
    assert record.name == "Alice Example"
    assert record.url == URL
    assert record.headline == "Software Engineer at Acme"
    assert record.bio_line == record.headline
    assert record.location == "Berlin, Germany"
    assert record.connection_count == 500
    assert record.follower_count == 1234
    assert record.extraction_status == ExtractionStatus.SUCCESS
    assert record.extraction_errors is None
    assert record.extracted_at is not None
    assert any(tag.startswith("name:") for tag in debug)


def test_name_only_is_partial():
    record = extract_profile(profile_html(headline=None, location=None), url=URL)
    assert record.name == "Alice Example"
    assert record.extraction_status == ExtractionStatus.PARTIAL


def test_missing_name_is_failed():
    record = extract_profile("<html><body><main></main></body></html>", url=URL)
    assert record.name == ""
    assert record.extraction_status == ExtractionStatus.FAILED
    assert record.extraction_errors == "Profile name not found on page"


def test_authwall_is_reported():
    html = '<html><body><form class="authwall-join-form"></form></body></html>'
    debug = []
    record = extract_profile(html, url=URL, debug=debug)
    assert record.extraction_status == ExtractionStatus.FAILED
    assert "Authwall" in record.extraction_errors
    assert "Authwall" in debug


def test_garbage_input_never_raises():
    record = extract_profile(None, url=URL)
    assert record.extraction_status == ExtractionStatus.FAILED
    assert record.extraction_errors


def test_connection_count_over_ceiling_is_reset():
    record = extract_profile(profile_html(connections="250,000"), url=URL)
    assert record.connection_count == 0


def test_large_follower_count_is_kept():
    record = extract_profile(profile_html(followers="500,000"), url=URL)
    assert record.follower_count == 500000


def test_parse_count_skips_mutual_connections():
    rule = COUNT_RULES["connection_count"]
    assert parse_count("12 mutual connections", rule) is None
    assert parse_count("500+ connections", rule) == 500
    assert parse_count("1,234 followers", rule) is None


def test_parse_count_skips_following():
    rule = COUNT_RULES["follower_count"]
    assert parse_count("Following 300", rule) is None
    assert parse_count("2,048 followers", rule) == 2048


def test_sanitize_count():
    assert sanitize_count(99, 100) == 99
    assert sanitize_count(101, 100) == 0


def test_location_candidates_are_filtered():
    assert plausible_location("San Francisco Bay Area")
    assert not plausible_location("500+ connections")
    assert not plausible_location("Contact info")
    assert not plausible_location("NY")
    assert not plausible_location("Berlin • Germany")


def test_count_text_is_not_taken_as_location():
    record = extract_profile(profile_html(location="500+ connections"), url=URL)
    assert record.location is None
    assert record.extraction_status == ExtractionStatus.SUCCESS


def test_experience_education_and_skills():
    sections = (
        '<section><div id="experience"></div><div><ul>'
        '<li class="pvs-list__item"><span class="mr1 t-bold"><span aria-hidden="true">Engineer</span>'
        '<span class="visually-hidden">Engineer</span></span>'
        '<span class="t-14 t-normal"><span aria-hidden="true">Acme · Full-time</span></span></li>'
        "</ul></div></section>"
        '<section><div id="education"></div><div><ul>'
        '<li class="pvs-list__item"><span class="mr1 t-bold"><span aria-hidden="true">TU Berlin</span></span>'
        '<span class="t-14 t-normal"><span aria-hidden="true">MSc Computer Science</span></span></li>'
        "</ul></div></section>"
        '<section><div id="skills"></div><div><ul>'
        + "".join(
            f'<li class="pvs-list__item"><span class="t-bold"><span aria-hidden="true">{skill}</span></span></li>'
            for skill in ["Python", "Python", "SQL"] + [f"Skill {i}" for i in range(20)]
        )
        + "</ul></div></section>"
    )
    record = extract_profile(profile_html(extra=sections), url=URL)
    assert [(e.title, e.company) for e in record.experience] == [("Engineer", "Acme · Full-time")]
    assert [(e.school, e.degree) for e in record.education] == [("TU Berlin", "MSc Computer Science")]
    assert record.skills[:2] == ["Python", "SQL"]
    assert len(record.skills) == 15
    assert record.skills[-1] == "Skill 12"
    assert len(record.skills) == len(set(record.skills))


def test_payload_uses_camel_case():
    payload = extract_profile(profile_html(), url=URL).to_payload()
    assert payload["bioLine"] == "Software Engineer at Acme"
    assert payload["connectionCount"] == 500
    assert payload["extractionStatus"] == "success"
    assert "about" not in payload


def test_compute_extraction_status():
    assert compute_extraction_status("", "x", "y") == ExtractionStatus.FAILED
    assert compute_extraction_status("  ", None, None) == ExtractionStatus.FAILED
    assert compute_extraction_status("Ann", None, " ") == ExtractionStatus.PARTIAL
    assert compute_extraction_status("Ann", None, "Paris") == ExtractionStatus.SUCCESS
    assert compute_extraction_status("Ann", "Engineer", None) == ExtractionStatus.SUCCESS


def test_list_caps_count_only_kept_entries():
    blank = '<li class="pvs-list__item"><span class="mr1 t-bold"></span></li>'
    job = (
        '<li class="pvs-list__item"><span class="mr1 t-bold"><span aria-hidden="true">Role {i}</span></span>'
        '<span class="t-14 t-normal"><span aria-hidden="true">Company {i}</span></span></li>'
    )
    sections = (
        '<section><div id="experience"></div><div><ul>'
        + blank * 3
        + "".join(job.format(i=i) for i in range(7))
        + "</ul></div></section>"
    )
    record = extract_profile(profile_html(extra=sections), url=URL)
    assert [e.title for e in record.experience] == [f"Role {i}" for i in range(5)]
    assert [e.order for e in record.experience] == [0, 1, 2, 3, 4]
