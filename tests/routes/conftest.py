"""Shared fixtures for route tests"""

from datetime import date, timedelta

import pytest


@pytest.fixture
def submission_payload():
    """A valid JSON body for POST /api/events"""
    return {
        "title": "Robotics Expo",
        "description": "Demos from every lab.",
        "date": (date.today() + timedelta(days=14)).isoformat(),
        "time": "17:00",
        "venue": "Main Auditorium",
        "category": "Club",
        "organizer": "Robotics Club",
        "registration_link": "https://example.com/register",
        "entry_fee": "",
    }


@pytest.fixture
def pending_event(make_event, test_user):
    """An unapproved event submitted by ``test_user``"""
    return make_event(
        approved=False,
        title="Pending Showcase",
        user_id=test_user.id,
        created_by=test_user.email,
    )


@pytest.fixture
def approved_event(make_event, test_user):
    """An approved event submitted by ``test_user``"""
    return make_event(title="Approved Concert", user_id=test_user.id, created_by=test_user.email)
