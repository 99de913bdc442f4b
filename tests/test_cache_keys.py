"""Tests for cache key builders."""

from homeboard.cache import keys, safe_file_name


def test_weather_key():
    assert keys.weather("JP", "Himeji") == "weather:JP:Himeji"


def test_geocode_key():
    assert keys.geocode("Himeji", "JP") == "geocode:Himeji:JP"


def test_collection_and_aggregate_keys():
    assert keys.collection("nextcloud", "tasks", "work") == "nextcloud_tasks_list:work"
    assert keys.aggregate("google", "calendar") == "google_calendar_items_all"


def test_collection_key_never_shares_a_file_with_the_aggregate():
    # a collection named like the aggregate suffix still maps elsewhere
    collection = safe_file_name(keys.collection("nextcloud", "tasks", "items_all"))
    aggregate = safe_file_name(keys.aggregate("nextcloud", "tasks"))

    assert collection != aggregate


def test_keys_differ_per_provider():
    assert keys.aggregate("google", "tasks") != keys.aggregate("nextcloud", "tasks")
    assert keys.collection("google", "tasks", "x") != keys.collection("nextcloud", "tasks", "x")
