"""
Tests for replaying patched model values onto the raw document.
"""

import pytest

from gitversioning.domain.model import Dependency, Profile
from gitversioning.exit_codes import StructuralDivergenceError
from gitversioning.infra.pom_reader import read_model_string
from gitversioning.infra.xml_document import RawDocument
from gitversioning.synchronizer import (
    DocumentSynchronizer,
    dependency_management_key,
    for_each_pair,
    plugin_key,
)


POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <!-- parent of all modules -->
    <parent>
        <groupId>org.example</groupId>
        <artifactId>parent</artifactId>
        <version>1.0.0</version>
    </parent>
    <artifactId>core</artifactId>
    <version>1.0.0</version>
    <properties>
        <foo>bar</foo>   <!-- formatted -->
        <other>keep</other>
    </properties>
    <dependencies>
        <!-- the api -->
        <dependency>
            <groupId>org.example</groupId>
            <artifactId>api</artifactId>
            <version>1.0.0</version>
        </dependency>
        <dependency>
            <groupId>junit</groupId>
            <artifactId>junit</artifactId>
            <version>4.13</version>
            <scope>test</scope>
        </dependency>
    </dependencies>
    <build>
        <plugins>
            <plugin>
                <artifactId>maven-jar-plugin</artifactId>
            </plugin>
            <plugin>
                <groupId>org.example</groupId>
                <artifactId>tool</artifactId>
                <version>1.0.0</version>
            </plugin>
        </plugins>
    </build>
    <profiles>
        <profile>
            <id>it</id>
            <dependencies>
                <dependency>
                    <groupId>org.example</groupId>
                    <artifactId>api</artifactId>
                    <version>1.0.0</version>
                    <classifier>tests</classifier>
                </dependency>
            </dependencies>
        </profile>
    </profiles>
</project>
"""


def _patch(model, property_names=()):
    document = RawDocument.parse(POM)
    DocumentSynchronizer(property_names).patch(document, model)
    return document.to_bytes().decode("utf-8")


class TestDocumentSynchronizer:
    """Test lockstep synchronization."""

    def test_unchanged_model_reproduces_document(self):
        assert _patch(read_model_string(POM), ["foo"]) == POM

    def test_changed_versions_are_written_in_place(self):
        model = read_model_string(POM)
        model.parent.version = "2.0.0"
        model.version = "2.0.0"
        model.dependencies[0].version = "2.0.0"
        model.build.plugins[1].version = "2.0.0"
        model.profiles[0].dependencies[0].version = "2.0.0"

        result = _patch(model)
        assert result.count("<version>2.0.0</version>") == 5
        assert result.count("<version>4.13</version>") == 1
        assert "<!-- parent of all modules -->" in result
        assert "<!-- the api -->" in result
        assert result == POM.replace("<version>1.0.0</version>", "<version>2.0.0</version>")

    def test_only_configured_properties_are_written(self):
        model = read_model_string(POM)
        model.properties["foo"] = "baz"
        model.properties["other"] = "changed"
        model.properties["git.commit"] = "abc"

        result = _patch(model, ["foo"])
        assert "<foo>baz</foo>   <!-- formatted -->" in result
        assert "<other>keep</other>" in result
        assert "git.commit" not in result

    def test_whitespace_only_difference_is_not_rewritten(self):
        source = "<project><version>\n  1.0.0\n</version></project>"
        document = RawDocument.parse(source)
        model = read_model_string(source)
        DocumentSynchronizer().patch(document, model)
        assert document.to_bytes().decode() == source

    def test_dependency_order_divergence(self):
        model = read_model_string(POM)
        model.dependencies.reverse()
        with pytest.raises(StructuralDivergenceError):
            _patch(model)

    def test_dependency_count_divergence(self):
        model = read_model_string(POM)
        model.dependencies.append(Dependency("org.example", "extra", "1.0.0"))
        with pytest.raises(StructuralDivergenceError):
            _patch(model)

    def test_missing_profile_divergence(self):
        model = read_model_string(POM)
        model.profiles = [Profile(id="other")]
        with pytest.raises(StructuralDivergenceError):
            _patch(model)

    def test_missing_parent_divergence(self):
        model = read_model_string(POM)
        model.parent = None
        with pytest.raises(StructuralDivergenceError):
            _patch(model)

    def test_patching_a_patched_document_is_idempotent(self):
        model = read_model_string(POM)
        model.version = "2.0.0"
        model.properties["foo"] = "baz"
        once = _patch(model, ["foo"])

        document = RawDocument.parse(once)
        DocumentSynchronizer(["foo"]).patch(document, model)
        assert document.to_bytes().decode("utf-8") == once

    def test_document_must_be_a_project(self):
        document = RawDocument.parse("<settings/>")
        with pytest.raises(StructuralDivergenceError):
            DocumentSynchronizer().patch(document, read_model_string("<project/>"))


class TestKeys:
    """Test identity keys of raw elements."""

    def test_dependency_key_defaults(self):
        document = RawDocument.parse(POM)
        dependencies = document.root.child("dependencies").children("dependency")
        assert dependency_management_key(dependencies[0]) == "org.example:api:jar"
        profile_dependency = (document.root.child("profiles").child("profile")
                              .child("dependencies").child("dependency"))
        assert dependency_management_key(profile_dependency) == "org.example:api:jar:tests"

    def test_plugin_key_defaults(self):
        document = RawDocument.parse(POM)
        plugins = document.root.child("build").child("plugins").children("plugin")
        assert plugin_key(plugins[0]) == "org.apache.maven.plugins:maven-jar-plugin"
        assert plugin_key(plugins[1]) == "org.example:tool"

    def test_for_each_pair(self):
        pairs = []
        for_each_pair([1, 2], ["1", "2"], str, str, lambda e, m: pairs.append((e, m)))
        assert pairs == [(1, "1"), (2, "2")]
        with pytest.raises(StructuralDivergenceError):
            for_each_pair([1], ["2"], str, str, lambda e, m: None)
