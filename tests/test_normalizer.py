from propmatch.matchers.normalizer import (
    extract_street_name,
    extract_street_number,
    is_placeholder_address,
    normalize_address,
    normalize_property_name,
)


def test_normalize_address_compound_direction_before_single():
    assert normalize_address("1234 Northeast Main Boulevard") == "1234 ne main blvd"


def test_normalize_address_strips_punctuation_and_abbreviates():
    assert normalize_address("222 S. 15th Street, Omaha, NE 68102") == "222 s 15th st omaha ne 68102"
    assert normalize_address("Suite #5; Lane") == "suite 5 ln"
    assert normalize_address("  500   South   Parkway  ") == "500 s pkwy"


def test_normalize_address_missing_input():
    assert normalize_address(None) == ""
    assert normalize_address("") == ""


def test_extract_street_number():
    assert extract_street_number("222 S 15th St") == "222"
    assert extract_street_number("Apt 5, 222 Main St") == ""
    assert extract_street_number(None) == ""


def test_extract_street_name_uses_part_before_comma():
    assert extract_street_name("222 S 15th Street, Omaha, NE 68102") == "s 15th st"
    assert extract_street_name("1234 Northeast Main Boulevard") == "ne main blvd"
    assert extract_street_name("") == ""


def test_normalize_property_name_aligns_variants():
    assert normalize_property_name("The Duo") == "duo"
    assert normalize_property_name("Duo Apartments") == "duo"
    assert normalize_property_name("THE Atlas Residences") == "atlas"
    assert normalize_property_name("  Park   Place ") == "park"


def test_normalize_property_name_keeps_words_that_only_look_like_articles():
    assert normalize_property_name("Theater Lofts") == "theater lofts"
    assert normalize_property_name("Apartments") == "apartments"
    assert normalize_property_name(None) == ""


def test_placeholder_addresses():
    assert is_placeholder_address("Address to be determined")
    assert is_placeholder_address("   ")
    assert is_placeholder_address(None)
    assert not is_placeholder_address("222 S 15th St")
