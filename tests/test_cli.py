"""Tests for the command line interface."""

import json

import pytest
import yaml

from promptopt.cli import (
    PROMPTOPT_YAML,
    build_options,
    build_parser,
    load_yaml_config,
    main,
    merge_config,
    read_prompt_arg,
    save_results,
)
from promptopt.core.techniques.feedback_iteration import FeedbackIterationTechnique
from promptopt.models.config import FeedbackIterationOptions
from promptopt.scoring import compare_prompts, score_prompt
from tests.helpers import ScriptedProvider


def _optimize_args(*argv):
    return build_parser().parse_args(["optimize", *argv])


class TestMergeConfig:
    """profile defaults < YAML < command line."""

    def test_default_profile(self, clean_env):
        effective = merge_config({}, _optimize_args())
        assert effective["profile"] == "balanced"
        assert effective["max_iterations"] == 5

    def test_profile_from_environment(self, clean_env):
        clean_env.setenv("PROMPTOPT_PROFILE", "quality")
        assert merge_config({}, _optimize_args())["profile"] == "quality"

    def test_layers(self, clean_env):
        yaml_data = {"profile": "fast", "history_size": 2, "max_iterations": 4, "prompt": "a.txt"}
        effective = merge_config(yaml_data, _optimize_args("--max-iterations", "7", "--prompt", "b.txt"))

        assert effective["profile"] == "fast"
        assert effective["max_iterations"] == 7
        assert effective["history_size"] == 2
        assert effective["min_improvement_threshold"] == 0.05
        assert effective["prompt"] == "b.txt"

    def test_cli_profile_beats_yaml(self, clean_env):
        effective = merge_config({"profile": "fast"}, _optimize_args("--profile", "quality"))
        assert effective["profile"] == "quality"
        assert effective["max_iterations"] == 10

    def test_profile_is_normalized(self, clean_env):
        assert merge_config({"profile": " Fast "}, _optimize_args())["profile"] == "fast"

    def test_unsupported_profile(self, clean_env):
        with pytest.raises(ValueError, match="Unsupported profile 'turbo'"):
            merge_config({"profile": "turbo"}, _optimize_args())

    def test_repeatable_domain_hints(self, clean_env):
        effective = merge_config({}, _optimize_args("--domain-hint", "legal", "--domain-hint", "email"))
        assert effective["domain_hints"] == ["legal", "email"]


class TestBuildOptions:
    """Effective config to optimizer options."""

    def test_known_fields_only(self, clean_env):
        effective = merge_config(
            {"model": "gpt-4o", "optimizer_model": "gpt-4o-mini", "runs_dir": "out"},
            _optimize_args("--threshold", "0.1"),
        )
        options = build_options(effective)

        assert isinstance(options, FeedbackIterationOptions)
        assert options.model is None
        assert options.optimizer_model == "gpt-4o-mini"
        assert options.min_improvement_threshold == 0.1

    def test_invalid_values_raise(self, clean_env):
        effective = merge_config({"max_iterations": 0}, _optimize_args())
        with pytest.raises(ValueError):
            build_options(effective)


def test_load_yaml_config(tmp_path):
    path = tmp_path / "config.yaml"
    assert load_yaml_config(str(path)) == {}

    path.write_text("profile: fast\nmax_iterations: 4\n", encoding="utf-8")
    assert load_yaml_config(str(path)) == {"profile": "fast", "max_iterations": 4}

    path.write_text("- just\n- a list\n", encoding="utf-8")
    assert load_yaml_config(str(path)) == {}


def test_read_prompt_arg(tmp_path):
    path = tmp_path / "prompt.txt"
    path.write_text("Write a haiku.", encoding="utf-8")
    assert read_prompt_arg(f"@{path}") == "Write a haiku."
    assert read_prompt_arg("inline prompt") == "inline prompt"

    with pytest.raises(SystemExit):
        read_prompt_arg(f"@{tmp_path / 'missing.txt'}")


def test_score_json(capsys):
    prompt = "Write a haiku about autumn."
    main(["score", prompt, "--output", "json"])
    data = json.loads(capsys.readouterr().out)

    assert data["prompt"] == prompt
    assert data["scores"]["overall"] == score_prompt(prompt).overall
    assert set(data["scores"]) == {"clarity", "specificity", "structure", "completeness", "efficiency", "overall"}
    assert isinstance(data["issues"], list)
    assert len(data["suggestions"]) <= 5


def test_score_text(capsys):
    main(["score", "Write a haiku about autumn."])
    assert "Overall Score:" in capsys.readouterr().out


def test_compare_json(capsys):
    prompt_a = "Write a haiku about autumn."
    prompt_b = "make it good"
    main(["compare", prompt_a, prompt_b, "--output", "json"])
    data = json.loads(capsys.readouterr().out)

    expected = compare_prompts(prompt_a, prompt_b)
    assert data["winner"] == expected.winner
    assert data["score_difference"] == expected.score_difference
    assert len(data["comparison"]) == 5


def test_init_creates_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    main(["init"])

    config = yaml.safe_load((tmp_path / PROMPTOPT_YAML).read_text(encoding="utf-8"))
    assert config["profile"] == "balanced"
    assert (tmp_path / "prompt.txt").read_text(encoding="utf-8").strip()


def test_init_keeps_existing_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "prompt.txt").write_text("mine", encoding="utf-8")
    main(["init"])
    assert (tmp_path / "prompt.txt").read_text(encoding="utf-8") == "mine"


def test_optimize_without_prompt_exits(tmp_path, monkeypatch, clean_env):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as exc_info:
        main(["optimize"])
    assert exc_info.value.code == 1


def test_optimize_without_credentials_exits(tmp_path, monkeypatch, clean_env):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "prompt.txt").write_text("Write a haiku.", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["optimize", "--prompt", "prompt.txt"])
    assert exc_info.value.code == 1


@pytest.mark.asyncio
async def test_save_results(tmp_path, seed_prompt):
    technique = FeedbackIterationTechnique(
        FeedbackIterationOptions(max_iterations=2),
        provider=ScriptedProvider(scores=[0.4, 0.7, 0.6]),
    )
    run = await technique.run(seed_prompt)
    evaluation = await technique.evaluate(run.variants, original_score=run.trajectory.seed_score)

    run_dir = save_results(run, evaluation, tmp_path / "runs", plot=False)

    assert run_dir.name.startswith("promptopt_run_")
    assert (run_dir / "best_prompt.txt").read_text(encoding="utf-8") == run.best_prompt
    trajectory = json.loads((run_dir / "trajectory.json").read_text(encoding="utf-8"))
    assert trajectory["improvement_curve"] == pytest.approx([0.4, 0.7, 0.6])
    assert trajectory["stopped_early"] is False
    assert trajectory["errors"] == []
    variants = yaml.safe_load((run_dir / "variants.yaml").read_text(encoding="utf-8"))
    assert len(variants["variants"]) == 2
    assert not (run_dir / "trajectory.png").exists()
