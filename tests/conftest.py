"""Test configuration and shared fixtures."""

from datetime import datetime

import pytest

from pubdash.records import Publication

SAMPLE_CSV = (
    "Publication Title,Directorate,Division,DD,BA Lead,Frequency,Output type,"
    "PO2 alignment (FY25/26),publish_dates\n"
    "Labour market overview,Economic,Labour,A. Smith,B. Jones,Monthly,Statistical bulletin,"
    "Employment,2026-09-15;2026-10-13\n"
    "GDP first estimate,Economic,National Accounts,C. Brown,D. White,Quarterly,Statistical bulletin,"
    "GDP,2026-08-12\n"
    "Consumer price inflation,Economic,Prices,E. Green,,Monthly,Statistical bulletin,"
    "Prices,2026-10-15\n"
    "\n"
    "Population estimates,Population,Demography,F. Black,G. Grey,Annual,Dataset,,\n"
)


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def publications():
    """A small record set covering blanks, casing and an ``Other`` group."""
    return [
        Publication(
            title="Labour market overview",
            directorate="Economic",
            division="Labour",
            frequency="Monthly",
            output_type="Statistical bulletin",
            alignment="Employment",
            publish_dates="2026-09-15;2026-10-13",
        ),
        Publication(
            title="GDP first estimate",
            directorate="Economic",
            division="National Accounts",
            frequency="Quarterly",
            output_type="Statistical bulletin",
            alignment="GDP",
            publish_dates="2026-08-12",
        ),
        Publication(
            title="GDP monthly estimate",
            directorate="Economic",
            division="National Accounts",
            frequency="Monthly",
            output_type="Dataset",
            alignment="GDP",
            publish_dates="2026-10-14;2024-01-01",
        ),
        Publication(
            title="Trade in services",
            directorate="economic",
            division="Trade",
            frequency=None,
            output_type="Dataset",
            alignment="Other",
            publish_dates=None,
        ),
        Publication(
            title="Population estimates",
            directorate="Population",
            division=None,
            frequency="Annual",
            output_type="Dataset",
            alignment=None,
            publish_dates="2026-06-30",
        ),
        Publication(
            title="Annual business survey",
            directorate="Business",
            division="Business Surveys",
            frequency="Annual",
            output_type="Statistical bulletin",
            alignment="Employment",
            publish_dates="not a date; 2025-11-03",
        ),
    ]
