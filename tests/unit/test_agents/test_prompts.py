from challenge_builder.agents.prompts import (
    DEFAULT_AGENTS,
    extract_template_variables,
    render_template,
)


def test_render_substitutes_variables():
    rendered = render_template("Project {{project_name}} ({{ status }})", {"project_name": "Atlas", "status": "active"})

    assert rendered == "Project Atlas (active)"


def test_render_missing_and_none_as_empty():
    assert render_template("[{{a}}][{{b}}]", {"b": None}) == "[][]"


def test_render_bools_and_numbers():
    assert render_template("{{done}}/{{count}}", {"done": True, "count": 3}) == "true/3"


def test_render_dotted_names():
    assert render_template("{{project.name}}", {"project.name": "Atlas"}) == "Atlas"


def test_render_leaves_single_braces_alone():
    assert render_template('{"id": "{{id}}"}', {"id": "c1"}) == '{"id": "c1"}'


def test_extract_variables_in_order():
    assert extract_template_variables("{{b}} {{a}} {{ b }}") == ["b", "a"]


def test_default_agent_prompts_use_declared_variables():
    for definition in DEFAULT_AGENTS.values():
        used = set(extract_template_variables(definition.system_prompt)) | set(
            extract_template_variables(definition.user_prompt)
        )
        assert used <= set(definition.available_variables), definition.slug
