"""
Tests for descriptor model patching.
"""

from datetime import datetime, timezone
from pathlib import Path

from gitversioning.domain.gav import GAV
from gitversioning.domain.model import Build, Dependency, Model, Parent, Plugin, Profile
from gitversioning.domain.refs import RefMatch, RefRule, RefType
from gitversioning.patcher import ModelPatcher
from gitversioning.placeholders import global_placeholders
from gitversioning.related import RelatedProjects
from gitversioning.situation import GitSituation

COMMIT = "abcdef1234567890abcdef1234567890abcdef12"


def _placeholders(rule):
    situation = GitSituation(
        root_directory=Path("/repo"),
        rev=COMMIT,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        branch="feature/x",
        tags=(),
        clean=True,
    )
    return global_placeholders(situation, RefMatch(COMMIT, "feature/x", rule))


def _model():
    return Model(
        group_id="org.example",
        artifact_id="b",
        version="1.0.0",
        parent=Parent("org.example", "a", "1.0.0"),
        properties={"foo": "bar", "other": "keep"},
        dependencies=[
            Dependency("org.example", "a", "1.0.0"),
            Dependency("junit", "junit", "4.13"),
            Dependency("org.example", "a", None, classifier="tests"),
        ],
        build=Build(plugins=[Plugin("org.example", "plugin", "0.9.0")], plugin_management=[]),
        profiles=[Profile(id="p", dependencies=[Dependency("org.example", "a", "1.0.0")],
                          properties={"foo": "profile"})],
        pom_file=Path("/repo/b/pom.xml"),
    )


RELATED = RelatedProjects([
    GAV("org.example", "a", "1.0.0"),
    GAV("org.example", "b", "1.0.0"),
    GAV("org.example", "plugin").wildcard(),
])


class TestModelPatcher:
    """Test applying a rule to a model."""

    def test_versions_of_related_projects_are_replaced(self):
        rule = RefRule(type=RefType.BRANCH, version="${ref}-SNAPSHOT")
        model = _model()
        ModelPatcher(RELATED, _placeholders(rule)).apply(model, rule)

        assert model.version == "feature-x-SNAPSHOT"
        assert model.parent.version == "feature-x-SNAPSHOT"
        assert model.dependencies[0].version == "feature-x-SNAPSHOT"
        assert model.dependencies[1].version == "4.13"
        assert model.dependencies[2].version is None
        assert model.build.plugins[0].version == "feature-x-SNAPSHOT"
        assert model.profiles[0].dependencies[0].version == "feature-x-SNAPSHOT"

    def test_version_placeholder_is_the_referenced_project_version(self):
        rule = RefRule(type=RefType.BRANCH, version="${version.release}-${ref.slug}")
        model = _model()
        ModelPatcher(RELATED, _placeholders(rule)).apply(model, rule)
        assert model.version == "1.0.0-feature-x"
        assert model.build.plugins[0].version == "0.9.0-feature-x"

    def test_unrelated_parent_is_untouched(self):
        rule = RefRule(type=RefType.BRANCH, version="2.0.0")
        model = _model()
        model.parent = Parent("org.springframework", "parent", "3.0.0")
        ModelPatcher(RELATED, _placeholders(rule)).apply(model, rule)
        assert model.parent.version == "3.0.0"
        assert model.version == "2.0.0"

    def test_without_version_format_versions_are_kept(self):
        rule = RefRule(type=RefType.BRANCH, properties={"foo": "${value}-${commit.short}"})
        model = _model()
        ModelPatcher(RELATED, _placeholders(rule)).apply(model, rule)
        assert model.version == "1.0.0"
        assert model.dependencies[0].version == "1.0.0"
        assert model.properties["foo"] == "bar-abcdef1"
        assert model.properties["other"] == "keep"
        assert model.profiles[0].properties["foo"] == "profile-abcdef1"

    def test_property_format_uses_original_project_version(self):
        rule = RefRule(type=RefType.BRANCH, version="9.9.9", properties={"foo": "${version}"})
        model = _model()
        ModelPatcher(RELATED, _placeholders(rule)).apply(model, rule)
        assert model.version == "9.9.9"
        assert model.properties["foo"] == "1.0.0"

    def test_git_properties_are_added(self):
        rule = RefRule(type=RefType.BRANCH)
        model = _model()
        ModelPatcher(RELATED, _placeholders(rule), {"git.commit": COMMIT}).apply(model, rule)
        assert model.properties["git.commit"] == COMMIT
