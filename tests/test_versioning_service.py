"""
Integration tests for the versioning service against real git repositories.

Skipped when no git executable is available.
"""

import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from gitversioning.config import CommandOptions
from gitversioning.exit_codes import StructuralDivergenceError
from gitversioning.infra.pom_reader import read_model
from gitversioning.patcher import ModelPatcher
from gitversioning.services.versioning_service import (
    BuildContext,
    GIT_VERSIONING_POM_NAME,
    VersioningService,
    extension_log_header,
)

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

CONFIG = """
refs:
  list:
    - type: tag
      pattern: "v(?P<version>.*)"
      version: "${ref.version}"
    - type: branch
      pattern: ".+"
      version: "${ref}-SNAPSHOT"
      properties:
        revision: "${commit.short}"
"""

ROOT_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <groupId>org.example</groupId>
    <artifactId>root</artifactId>
    <version>1.0.0</version>
    <packaging>pom</packaging>
    <!-- modules -->
    <modules>
        <module>core</module>
    </modules>
    <properties>
        <revision>none</revision>
    </properties>
</project>
"""

CORE_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <parent>
        <groupId>org.example</groupId>
        <artifactId>root</artifactId>
        <version>1.0.0</version>
    </parent>
    <artifactId>core</artifactId>
    <dependencies>
        <dependency>
            <groupId>org.example</groupId>
            <artifactId>root</artifactId>
            <version>1.0.0</version>
        </dependency>
        <dependency>
            <groupId>junit</groupId>
            <artifactId>junit</artifactId>
            <version>4.13</version>
        </dependency>
    </dependencies>
</project>
"""


def git(repo, *args):
    return subprocess.run(
        ["git", "-c", "user.name=Test User", "-c", "user.email=test@example.com",
         "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false", *args],
        cwd=repo, capture_output=True, text=True, check=True,
    ).stdout.strip()


@pytest.fixture
def project(tmp_path):
    """A committed two module project on branch feature/foo."""
    repo = tmp_path / "repo"
    (repo / ".mvn").mkdir(parents=True)
    (repo / "core").mkdir()
    (repo / ".mvn" / "git-versioning.yaml").write_text(CONFIG)
    (repo / "pom.xml").write_text(ROOT_POM)
    (repo / "core" / "pom.xml").write_text(CORE_POM)
    git(repo, "init", "-q")
    git(repo, "add", ".")
    git(repo, "commit", "-q", "-m", "Initial commit")
    git(repo, "checkout", "-q", "-b", "feature/foo")
    return repo


def _service(repo, **options):
    context = BuildContext(repo, CommandOptions(options, environ={}), environ={})
    return VersioningService(context)


class TestVersioningService:
    """Test a full versioning pass."""

    def test_branch_build(self, project):
        models = _service(project).process_build(project / "pom.xml")

        assert [model.artifact_id for model in models] == ["root", "core"]
        assert models[0].version == "feature-foo-SNAPSHOT"
        assert models[1].parent.version == "feature-foo-SNAPSHOT"

        short_commit = git(project, "rev-parse", "--short=7", "HEAD")
        root_versioned = (project / GIT_VERSIONING_POM_NAME).read_text()
        assert "<version>feature-foo-SNAPSHOT</version>" in root_versioned
        assert f"<revision>{short_commit}</revision>" in root_versioned
        assert "<!-- modules -->" in root_versioned

        core_versioned = (project / "core" / GIT_VERSIONING_POM_NAME).read_text()
        assert core_versioned.count("<version>feature-foo-SNAPSHOT</version>") == 2
        assert "<version>4.13</version>" in core_versioned

        assert (project / "pom.xml").read_text() == ROOT_POM

    def test_git_properties_are_added_to_models(self, project):
        models = _service(project).process_build(project / "pom.xml")
        properties = models[0].properties
        assert properties["git.ref"] == "feature/foo"
        assert properties["git.ref.slug"] == "feature-foo"
        assert properties["git.commit"] == git(project, "rev-parse", "HEAD")

    def test_tag_build(self, project):
        git(project, "tag", "v2.3.0")
        git(project, "checkout", "-q", "--detach")
        models = _service(project).process_build(project / "pom.xml")
        assert models[0].version == "2.3.0"

    def test_tag_override_option(self, project):
        models = _service(project, **{"git.tag": "v3.0.0"}).process_build(project / "pom.xml")
        assert models[0].version == "3.0.0"

    def test_update_pom(self, project):
        _service(project, **{"versioning.updatePom": "true"}).process_build(project / "pom.xml")
        assert "<version>feature-foo-SNAPSHOT</version>" in (project / "pom.xml").read_text()
        assert (project / "pom.xml").read_bytes() == (project / GIT_VERSIONING_POM_NAME).read_bytes()

    def test_disabled_by_option(self, project):
        models = _service(project, **{"versioning.disable": "true"}).process_build(project / "pom.xml")
        assert models[0].version == "1.0.0"
        assert not (project / GIT_VERSIONING_POM_NAME).exists()

    def test_no_matching_rule(self, project):
        (project / ".mvn" / "git-versioning.yaml").write_text(
            "refs:\n  list:\n    - type: branch\n      pattern: main\n      version: x\n")
        models = _service(project).process_build(project / "pom.xml")
        assert models[0].version == "1.0.0"
        assert not (project / GIT_VERSIONING_POM_NAME).exists()

    def test_rev_fallback(self, project):
        (project / ".mvn" / "git-versioning.yaml").write_text("rev:\n  version: \"${commit}\"\n")
        models = _service(project).process_build(project / "pom.xml")
        assert models[0].version == git(project, "rev-parse", "HEAD")

    def test_models_are_processed_once(self, project):
        service = _service(project)
        first = service.read(project / "pom.xml")
        second = service.read(project / "pom.xml")
        assert first.version == second.version == "feature-foo-SNAPSHOT"
        assert first is not second

    def test_concurrent_reads_process_each_descriptor_once(self, project):
        service = _service(project)
        pom_files = [project / "pom.xml", project / "core" / "pom.xml"] * 8

        with patch.object(VersioningService, "_init", autospec=True,
                          side_effect=VersioningService._init) as init_spy, \
                patch.object(ModelPatcher, "apply", autospec=True,
                             side_effect=ModelPatcher.apply) as apply_spy, \
                patch.object(VersioningService, "write_pom_file", autospec=True,
                             side_effect=VersioningService.write_pom_file) as write_spy:
            with ThreadPoolExecutor(max_workers=8) as executor:
                models = list(executor.map(service.read, pom_files))

        assert {model.version for model in models[0::2]} == {"feature-foo-SNAPSHOT"}
        assert {model.parent.version for model in models[1::2]} == {"feature-foo-SNAPSHOT"}
        assert init_spy.call_count == 1
        patched = [call.args[1].pom_file.resolve() for call in apply_spy.call_args_list]
        assert sorted(patched) == sorted({pom_file.resolve() for pom_file in pom_files})
        assert write_spy.call_count == 2


class TestVersioningServiceUnit:
    """Test skip paths without a repository."""

    def test_model_without_pom_file_is_returned_as_is(self, tmp_path):
        service = VersioningService(BuildContext(tmp_path))
        model = read_model(_write(tmp_path / "pom.xml", ROOT_POM))
        model.pom_file = None
        assert service.process_model(model) is model

    def test_divergent_model_is_fatal(self, project):
        service = _service(project)
        model = read_model(project / "core" / "pom.xml")
        model.dependencies.reverse()
        with pytest.raises(StructuralDivergenceError):
            service.process_model(model)

    def test_log_header(self):
        header = extension_log_header("gitversioning 0.1.0", width=40)
        assert " gitversioning 0.1.0 " in header
        assert len(header) == 40


def _write(path, text):
    path.write_text(text)
    return path
