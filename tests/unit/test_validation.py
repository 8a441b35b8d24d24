"""Tests for validation utilities."""

from src.utils.validation import (
    validate_about,
    validate_article,
    validate_category,
    validate_company,
    validate_event,
    validate_location,
    validate_toggle,
)
from tests.unit.fixtures import (
    make_article_request,
    make_category_request,
    make_company_request,
    make_event_request,
    make_location_request,
)


class TestValidateArticle:
    """Tests for validate_article."""

    def test_valid(self) -> None:
        assert validate_article(make_article_request()) == []

    def test_one_language_is_enough(self) -> None:
        request = make_article_request(title={"pt": "Só português", "en": "", "es": " "})

        assert validate_article(request) == []

    def test_every_problem_reported(self) -> None:
        """Test all failures are returned together, not just the first."""
        errors = validate_article({"title": {}, "body": None, "publicationDate": "yesterday"})

        assert "title must have at least one language filled." in errors
        assert "slug is required." in errors
        assert "body is required." in errors
        assert "publicationDate is not a valid date." in errors
        assert any(e.startswith("id is required") for e in errors)

    def test_id_derived_from_slug(self) -> None:
        request = make_article_request()
        del request["id"]

        assert validate_article(request) == []


class TestValidateCategory:
    """Tests for validate_category."""

    def test_valid(self) -> None:
        assert validate_category(make_category_request()) == []

    def test_min_lengths_per_language(self) -> None:
        errors = validate_category(make_category_request(name={"pt": "A", "en": "Art", "es": "Arte"}, slug={"pt": "ar"}))

        assert "name.pt must have at least 2 characters." in errors
        assert "slug.pt must have at least 3 characters." in errors
        assert "slug.en must have at least 3 characters." in errors

    def test_self_parent(self) -> None:
        errors = validate_category(make_category_request(parent_id="ARTE"))

        assert errors == ["parent_id must not reference the category itself."]


class TestValidateCompany:
    """Tests for validate_company."""

    def test_valid(self) -> None:
        assert validate_company(make_company_request()) == []

    def test_required_fields(self) -> None:
        errors = validate_company({"slug": "ab", "name": "", "address": None})

        assert "slug must be a valid slug (at least 3 characters)." in errors
        assert "name is required." in errors
        assert "location is required." in errors
        assert "address is required." in errors
        assert "address.street is required." in errors

    def test_postal_code(self) -> None:
        request = make_company_request()
        request["address"]["postal_code"] = "1234"

        assert validate_company(request) == ["address.postal_code must be a valid postal code (e.g. 01310-200)."]

    def test_postal_code_without_dash(self) -> None:
        request = make_company_request()
        request["address"]["postal_code"] = "01037010"

        assert validate_company(request) == []

    def test_geo_ranges(self) -> None:
        errors = validate_company(make_company_request(geo={"lat": 91, "lng": "west"}))

        assert "geo.lat must be between -90 and 90." in errors
        assert "geo.lng must be between -180 and 180." in errors

    def test_geo_must_be_object(self) -> None:
        assert validate_company(make_company_request(geo=[1, 2])) == ["geo must be an object with lat and lng."]
        assert validate_company(make_company_request(geo="x")) == ["geo must be an object with lat and lng."]
        assert validate_company(make_company_request(geo=None)) == []


class TestValidateEvent:
    """Tests for validate_event."""

    def test_valid(self) -> None:
        assert validate_event(make_event_request()) == []

    def test_end_before_start(self) -> None:
        errors = validate_event(make_event_request(endDate="2030-03-10T20:00:00Z"))

        assert errors == ["endDate must be greater than or equal to startDate."]

    def test_pricing(self) -> None:
        assert validate_event(make_event_request(pricing=-1)) == ["pricing must be a number >= 0."]
        assert validate_event(make_event_request(pricing=True)) == ["pricing must be a number >= 0."]
        assert validate_event(make_event_request(pricing=None)) == ["pricing is required."]
        assert validate_event(make_event_request(pricing=0)) == []

    def test_references_and_images_required(self) -> None:
        errors = validate_event(make_event_request(category="", company=None, heroImage="", thumbnail=None))

        assert errors == [
            "category is required.",
            "company is required.",
            "heroImage is required.",
            "thumbnail is required.",
        ]

    def test_ticket_link(self) -> None:
        errors = validate_event(make_event_request(externalTicketLink="tickets.example.com"))

        assert errors == ["externalTicketLink must be a valid URL."]

    def test_facilities_must_be_list(self) -> None:
        assert validate_event(make_event_request(facilities="parking")) == ["facilities must be an array."]

    def test_valid_recurrence(self) -> None:
        recurrence = {
            "rrule": "RRULE:FREQ=WEEKLY;BYDAY=MO",
            "until": "2030-06-01T00:00:00Z",
            "exdates": ["2030-03-17T21:00:00Z"],
            "rdates": [],
        }

        assert validate_event(make_event_request(recurrence=recurrence)) == []

    def test_invalid_recurrence(self) -> None:
        """Test rrule, until and exdates are all checked."""
        recurrence = {"rrule": "BYDAY=MO", "exdates": ["never"], "rdates": "2030-01-01"}

        errors = validate_event(make_event_request(recurrence=recurrence))

        assert "recurrence.rrule must define FREQ." in errors
        assert "recurrence.until is required." in errors
        assert "recurrence.exdates is not a valid date." in errors
        assert "recurrence.rdates must be an array of dates." in errors

    def test_recurrence_bad_until_in_rule(self) -> None:
        recurrence = {"rrule": "FREQ=DAILY;UNTIL=soon", "until": "2030-06-01T00:00:00Z"}

        errors = validate_event(make_event_request(recurrence=recurrence))

        assert len(errors) == 1
        assert errors[0].startswith("recurrence.rrule is invalid")

    def test_recurrence_rule_rejected_by_expander(self) -> None:
        """Test rules dateutil cannot build are reported instead of stored."""
        for rrule in ("FREQ=FORTNIGHTLY", "FREQ=WEEKLY;BYDAY=XX", "FREQ=DAILY;INTERVAL=often"):
            recurrence = {"rrule": rrule, "until": "2030-06-01T00:00:00Z"}

            errors = validate_event(make_event_request(recurrence=recurrence))

            assert len(errors) == 1, rrule
            assert errors[0].startswith("recurrence.rrule is invalid"), rrule


class TestValidateLocation:
    """Tests for validate_location."""

    def test_valid(self) -> None:
        assert validate_location(make_location_request()) == []

    def test_required(self) -> None:
        assert validate_location({}) == [
            "id is required.",
            "country is required.",
            "state is required.",
            "city is required.",
        ]

    def test_districts(self) -> None:
        assert validate_location(make_location_request(districtsAndSlugs=["Sé"])) == [
            "districtsAndSlugs must be an object of district name to slug."
        ]
        assert validate_location(make_location_request(districtsAndSlugs={"Sé": ""})) == [
            "districtsAndSlugs must map every district to a slug."
        ]


class TestValidateOthers:
    """Tests for the about page and toggle validators."""

    def test_about(self) -> None:
        assert validate_about({"body": {"pt": "Sobre"}}) == []
        assert validate_about({}) == ["body is required."]

    def test_toggle(self) -> None:
        assert validate_toggle({"active": False}) == []
        assert validate_toggle({"active": "false"}) == ["active is required and must be a boolean."]
        assert validate_toggle({}) == ["active is required and must be a boolean."]
