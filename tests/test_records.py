"""Tests for structural records."""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ValidationError

from liveload.records import Record


def make_point_class():
    """Simulate a class defined anew by each reload of its module."""

    @dataclass
    class Point:
        x: int
        y: int

    return Point


class TestRecord:
    """Tests for Record."""

    def test_equal_by_value(self):
        assert Record.of("Point", x=1, y=2) == Record.of("Point", x=1, y=2)
        assert Record.of("Point", x=1, y=2) != Record.of("Point", y=2, x=1)
        assert Record.of("Point", x=1, y=2) != Record.of("Vector", x=1, y=2)

    def test_hashable(self):
        assert len({Record.of("A", v=1), Record.of("A", v=1)}) == 1

    def test_field_access(self):
        record = Record.of("User", name="ada", age=36)

        assert record.field_names == ("name", "age")
        assert record["name"] == "ada"
        assert record.get("email") is None
        assert record.get("email", "-") == "-"
        assert record.as_dict() == {"name": "ada", "age": 36}
        assert record.is_a("User")

        with pytest.raises(KeyError):
            record["email"]

    def test_replace_keeps_order(self):
        record = Record.of("User", name="ada", age=36)
        older = record.replace(age=37)

        assert older.data == (("name", "ada"), ("age", 37))
        assert record["age"] == 36

    def test_replace_rejects_unknown_fields(self):
        with pytest.raises(KeyError):
            Record.of("User", name="ada").replace(email="a@b")

    def test_immutable(self):
        record = Record.of("User", name="ada")
        with pytest.raises(ValidationError):
            record.tag = "Admin"

    def test_from_object_survives_class_redefinition(self):
        """Instances of two versions of a class become equal records."""
        old_point = make_point_class()
        new_point = make_point_class()

        assert old_point(1, 2) != new_point(1, 2)
        assert Record.from_object(old_point(1, 2)) == Record.from_object(new_point(1, 2))

    def test_from_pydantic_model(self):
        class Settings(BaseModel):
            debug: bool = False
            workers: int = 4

        record = Record.from_object(Settings(workers=2))

        assert record == Record.of("Settings", debug=False, workers=2)

    def test_from_object_rejects_plain_objects(self):
        with pytest.raises(TypeError):
            Record.from_object(object())
