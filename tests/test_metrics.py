"""Tests for the metric calculator."""

import json

from codelens.metrics import (
    C_STYLE_PROFILE,
    PYTHON_PROFILE,
    SECURITY_BASELINE,
    SMALL_FILE_BASELINE,
    MetricSet,
    compute_metrics,
)


def _lines(line: str, count: int) -> str:
    return "\n".join(line for _ in range(count))


class TestMetricSet:
    """Test MetricSet clamping and serialization."""

    def test_clamps_values(self):
        metrics = MetricSet(line_length=150, comment_ratio=-5)
        assert metrics.line_length == 100.0
        assert metrics.comment_ratio == 0.0

    def test_to_dict_keys(self):
        assert set(MetricSet().to_dict()) == {
            "line_length",
            "comment_ratio",
            "complexity_score",
            "security_score",
            "consistency_score",
            "best_practices_score",
        }


class TestComputeMetrics:
    """Test compute_metrics on representative inputs."""

    def test_small_file_baseline(self):
        metrics = compute_metrics("x = 1\ny = 2\n", PYTHON_PROFILE)
        assert metrics.line_length == SMALL_FILE_BASELINE
        assert metrics.complexity_score == SMALL_FILE_BASELINE
        assert metrics.security_score == SECURITY_BASELINE

    def test_small_file_still_checks_security(self):
        metrics = compute_metrics("eval(userInput)", C_STYLE_PROFILE)
        assert metrics.security_score < SECURITY_BASELINE

    def test_eval_penalty(self):
        clean = compute_metrics("const result = parse(userInput);")
        risky = compute_metrics("const result = eval(userInput);")
        assert risky.security_score < clean.security_score

    def test_hardcoded_secret_penalty(self):
        metrics = compute_metrics('password = "hunter2"', PYTHON_PROFILE)
        assert metrics.security_score < SECURITY_BASELINE

    def test_validation_bonus(self):
        metrics = compute_metrics("value = sanitize(raw)", PYTHON_PROFILE)
        assert metrics.security_score > SECURITY_BASELINE

    def test_long_lines_penalized(self):
        long_line = "total = " + " + ".join(f"value_{i}" for i in range(12))
        metrics = compute_metrics(_lines(long_line, 12), PYTHON_PROFILE)
        assert metrics.line_length < 50

    def test_comments_raise_ratio(self):
        bare = compute_metrics(_lines("x = compute()", 12), PYTHON_PROFILE)
        commented = compute_metrics(
            "\n".join(f"# step {i}\nx = compute()" for i in range(6)),
            PYTHON_PROFILE,
        )
        assert commented.comment_ratio > bare.comment_ratio

    def test_branching_lowers_complexity(self):
        flat = compute_metrics(_lines("x = compute()", 12), PYTHON_PROFILE)
        branchy = compute_metrics(_lines("if x: y = 1", 12), PYTHON_PROFILE)
        assert branchy.complexity_score < flat.complexity_score

    def test_mixed_indentation_penalized(self):
        text = "\n".join(["def f():", "\tx = 1", "    y = 2"] * 4)
        metrics = compute_metrics(text, PYTHON_PROFILE)
        assert metrics.consistency_score <= 70

    def test_legacy_constructs_penalized(self):
        text = _lines("var x = 1; console.log(x);", 12)
        metrics = compute_metrics(text, C_STYLE_PROFILE)
        assert metrics.best_practices_score < 100

    def test_values_in_range(self):
        text = _lines("eval(x); eval(y); eval(z); alert(1); var a = 'b' + \"c\";", 20)
        metrics = compute_metrics(text)
        for value in metrics.to_dict().values():
            assert 0 <= value <= 100

    def test_deterministic(self):
        text = _lines("for (let i = 0; i < n; i++) { total += i; }", 15)
        assert compute_metrics(text) == compute_metrics(text)

    def test_non_string_input(self):
        metrics = compute_metrics(None)
        assert metrics.security_score == SECURITY_BASELINE

    def test_notebook_scans_code_cells(self):
        notebook = json.dumps({
            "cells": [
                {"cell_type": "markdown", "source": ["# eval(everything)\n"]},
                {"cell_type": "code", "source": ["x = 1\n"]},
            ]
        })
        metrics = compute_metrics(notebook, PYTHON_PROFILE)
        assert metrics.security_score == SECURITY_BASELINE
