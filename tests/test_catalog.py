"""Tests for the question catalog schema and loader."""
import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.catalog import load_catalog
from app.schemas.catalog import QuestionCatalog, QuestionType


def _write(tmp_path, document):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def _category(category_id, weight, question_ids):
    return {
        "id": category_id,
        "weight": weight,
        "questions": [
            {"id": qid, "type": "yes_no", "options": [{"id": "yes", "value": 1.0}, {"id": "no", "value": 0.0}]}
            for qid in question_ids
        ],
    }


class TestBundledCatalog:

    def test_weights_sum_to_one(self, bundled_catalog):
        assert bundled_catalog.weight_sum == pytest.approx(1.0)

    def test_covers_every_question_type(self, bundled_catalog):
        types = {q.type for q in bundled_catalog.iter_questions()}
        assert types == set(QuestionType)

    def test_question_lookup(self, bundled_catalog):
        question = bundled_catalog.get_question("prayer_frequency")
        assert question is not None
        assert question.type == QuestionType.SCALE
        assert bundled_catalog.get_question("does_not_exist") is None

    def test_totals(self, bundled_catalog):
        assert bundled_catalog.total_questions == len(bundled_catalog.question_ids) == 11


class TestCatalogValidation:

    def test_duplicate_question_ids_across_categories(self):
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate(
                {"categories": [_category("a", 0.5, ["q1"]), _category("b", 0.5, ["q1"])]}
            )

    def test_duplicate_category_ids(self):
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate(
                {"categories": [_category("a", 0.5, ["q1"]), _category("a", 0.5, ["q2"])]}
            )

    def test_duplicate_option_ids(self):
        document = {"categories": [_category("a", 1.0, ["q1"])]}
        document["categories"][0]["questions"][0]["options"].append({"id": "yes", "value": 0.5})
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate(document)

    def test_empty_category_rejected(self):
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate({"categories": [_category("a", 1.0, [])]})

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate({"categories": [_category("a", -0.1, ["q1"])]})

    def test_unknown_question_type_rejected(self):
        document = {"categories": [_category("a", 1.0, ["q1"])]}
        document["categories"][0]["questions"][0]["type"] = "ranking"
        with pytest.raises(ValidationError):
            QuestionCatalog.model_validate(document)


class TestLoadCatalog:

    def test_loads_from_path(self, tmp_path):
        path = _write(
            tmp_path,
            {"version": "7", "categories": [_category("a", 0.6, ["q1"]), _category("b", 0.4, ["q2", "q3"])]},
        )
        catalog = load_catalog(path)
        assert catalog.version == "7"
        assert catalog.question_ids == frozenset({"q1", "q2", "q3"})

    def test_unnormalised_weights_warn_but_load(self, tmp_path):
        path = _write(
            tmp_path,
            {"categories": [_category("a", 0.6, ["q1"]), _category("b", 0.6, ["q2"])]},
        )
        with patch("app.catalog.logger") as mock_logger:
            catalog = load_catalog(path)

        assert catalog.weight_sum == pytest.approx(1.2)
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.args[0] == "catalog_weights_not_normalised"

    def test_normalised_weights_do_not_warn(self, tmp_path):
        path = _write(
            tmp_path,
            {"categories": [_category("a", 0.7, ["q1"]), _category("b", 0.3, ["q2"])]},
        )
        with patch("app.catalog.logger") as mock_logger:
            load_catalog(path)

        mock_logger.warning.assert_not_called()
