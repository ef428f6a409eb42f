# tests/wtx/test_provision.py
"""
Tests for worktree creation.

Integration tests run real git against a local bare origin; the post-create
and task-run tests drive the Provisioner pieces directly.
"""

import io
import stat

import pytest


def _config(**kwargs):
    from wtx.config import Config

    return Config(**kwargs)


def _provisioner(config, repo, tmp_path, **kwargs):
    from wtx.console import Console
    from wtx.events import EventLog
    from wtx.git import GitGateway
    from wtx.provision import Provisioner

    return Provisioner(
        config,
        gateway=GitGateway(cwd=repo, remote=config.remote),
        console=Console(stream=io.StringIO()),
        events=EventLog(tmp_path / "events.jsonl"),
        **kwargs,
    )


def _output(provisioner):
    return provisioner.console.stream.getvalue()


class TestWorktreeRequest:
    def test_empty_task_rejected(self):
        from wtx.provision import WorktreeRequest

        with pytest.raises(ValueError, match="no description provided"):
            WorktreeRequest(task="  ", base="develop", assistant="codex")

    def test_empty_base_rejected(self):
        from wtx.provision import WorktreeRequest

        with pytest.raises(ValueError, match="base branch"):
            WorktreeRequest(task="Fix it", base="", assistant="codex")


class TestCreate:
    def test_new_branch_from_base(self, git_repo, tmp_path, run_git):
        """A branch unknown to origin is created from origin/<base> and published."""
        from wtx.provision import WorktreeRequest

        provisioner = _provisioner(_config(), git_repo, tmp_path)
        location = provisioner.create(
            WorktreeRequest(task="Fix login bug", base="develop", assistant="codex", run_task=False)
        )

        assert location.branch == "feature/fix-login-bug"
        assert location.upstream == "origin/feature/fix-login-bug"
        assert location.path == git_repo.resolve() / ".worktrees" / "feature__fix-login-bug"
        assert location.path.is_dir()
        assert run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=location.path) == (
            "feature/fix-login-bug"
        )
        assert run_git(
            "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}", cwd=location.path
        ) == "origin/feature/fix-login-bug"
        assert "refs/heads/feature/fix-login-bug" in run_git(
            "ls-remote", "--heads", "origin", cwd=git_repo
        )

    def test_existing_remote_branch_is_checked_out(self, git_repo, tmp_path, run_git):
        from wtx.provision import WorktreeRequest

        run_git("push", "--quiet", "origin", "main:refs/heads/feature/existing", cwd=git_repo)
        provisioner = _provisioner(_config(), git_repo, tmp_path)

        location = provisioner.create(
            WorktreeRequest(task="existing", base="develop", assistant="codex", run_task=False)
        )

        assert location.branch == "feature/existing"
        assert run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=location.path) == "feature/existing"
        assert run_git("rev-parse", "HEAD", cwd=location.path) == run_git(
            "rev-parse", "main", cwd=git_repo
        )
        assert "Checking out existing origin/feature/existing" in _output(provisioner)

    def test_success_output_and_event(self, git_repo, tmp_path):
        from wtx.events import EventLog
        from wtx.provision import WorktreeRequest

        provisioner = _provisioner(_config(), git_repo, tmp_path)
        provisioner.create(
            WorktreeRequest(task="Add search", base="develop", assistant="codex", run_task=False)
        )

        output = _output(provisioner)
        assert "Worktree created at:" in output
        assert "Branch: feature/add-search (base: origin/develop)" in output
        assert "Upstream: origin/feature/add-search" in output

        [event] = EventLog(tmp_path / "events.jsonl").tail(5)
        assert event["event"] == "worktree_created"
        assert event["branch"] == "feature/add-search"
        assert event["base"] == "develop"

    def test_copy_files_and_missing_sources(self, git_repo, tmp_path):
        """A missing copy source is skipped and later hooks still run."""
        from wtx.config import CopyFileConfig, HookConfig
        from wtx.provision import WorktreeRequest

        (git_repo / ".env").write_text("TOKEN=local\n")
        (git_repo / "fixtures").mkdir()
        (git_repo / "fixtures" / "seed.sql").write_text("-- seed\n")
        config = _config(
            copy_files=[
                CopyFileConfig(from_=".env"),
                CopyFileConfig(from_="fixtures", to="db/fixtures"),
                CopyFileConfig(from_="missing.txt"),
            ],
            post_create_hooks=[
                HookConfig(name="after copy", command=["sh", "-c", "touch hook-ran"])
            ],
        )
        provisioner = _provisioner(config, git_repo, tmp_path)

        location = provisioner.create(
            WorktreeRequest(task="Seed data", base="develop", assistant="codex", run_task=False)
        )

        assert (location.path / ".env").read_text() == "TOKEN=local\n"
        assert (location.path / "db" / "fixtures" / "seed.sql").read_text() == "-- seed\n"
        output = _output(provisioner)
        assert "Copied: .env -> .env" in output
        assert "Not found: missing.txt (skipped)" in output
        assert output.index("Not found: missing.txt") < output.index("Hook: after copy")
        assert (location.path / "hook-ran").exists()

    def test_assistant_names_branch_and_runs_task(self, git_repo, tmp_path):
        """A scripted assistant CLI both names the branch and receives the task."""
        from wtx.config import AssistantCommand, LLMConfig
        from wtx.provision import WorktreeRequest

        record = tmp_path / "task-run.txt"
        script = tmp_path / "fake-assistant"
        script.write_text(
            "#!/bin/sh\n"
            'if [ "$1" = "name" ]; then\n'
            '  echo "Suggested branch: bugfix/null-pointer-123"\n'
            "  exit 0\n"
            "fi\n"
            f"printf '%s\\n' \"$(pwd -P)\" \"$2\" > {record}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        config = _config(
            llm=LLMConfig(
                default="fake",
                commands={
                    "fake": AssistantCommand(
                        executable=str(script),
                        branch_name_args_template=["name", "{prompt}"],
                        task_run_args_template=["run", "{task}"],
                    )
                },
            )
        )
        provisioner = _provisioner(config, git_repo, tmp_path)

        location = provisioner.create(
            WorktreeRequest(task="Fix null pointer", base="develop", assistant="fake")
        )

        assert location.branch == "bugfix/null-pointer-123"
        assert location.path.name == "bugfix__null-pointer-123"
        assert record.read_text().splitlines() == [
            str(location.path.resolve()),
            "Fix null pointer",
        ]

    def test_outside_repository_is_precondition_error(self, tmp_path):
        from wtx.errors import PreconditionError
        from wtx.provision import WorktreeRequest

        outside = tmp_path / "plain"
        outside.mkdir()
        provisioner = _provisioner(_config(), outside, tmp_path)

        with pytest.raises(PreconditionError, match="not inside a git repository"):
            provisioner.create(WorktreeRequest(task="x", base="develop", assistant="codex"))

    def test_missing_git_is_precondition_error(self, make_runtime, tmp_path):
        from wtx.errors import PreconditionError
        from wtx.git import GitGateway
        from wtx.provision import Provisioner, WorktreeRequest

        runtime = make_runtime(executables={})
        provisioner = Provisioner(
            _config(), gateway=GitGateway(cwd=tmp_path, runtime=runtime), runtime=runtime
        )

        with pytest.raises(PreconditionError, match="required command not found: git"):
            provisioner.create(WorktreeRequest(task="x", base="develop", assistant="codex"))
        assert runtime.calls == []

    def test_missing_base_branch_fails_before_worktree(self, git_repo, tmp_path):
        from wtx.errors import GitOperationError
        from wtx.provision import WorktreeRequest

        provisioner = _provisioner(_config(), git_repo, tmp_path)

        with pytest.raises(GitOperationError, match="git fetch origin nope --prune"):
            provisioner.create(
                WorktreeRequest(task="x", base="nope", assistant="codex", run_task=False)
            )
        assert not (git_repo / ".worktrees").exists()


class TestPostCreate:
    def test_run_action_in_worktree(self, tmp_path):
        from wtx.config import RunAction

        target = tmp_path / "wt"
        target.mkdir()
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        provisioner.run_post_create(
            [RunAction(command=["sh", "-c", "pwd -P > ran.txt"], name="where")],
            tmp_path,
            target,
        )

        assert (target / "ran.txt").read_text().strip() == str(target.resolve())
        assert "Hook: where" in _output(provisioner)

    def test_absolute_cwd_stays_inside_worktree(self, tmp_path):
        from wtx.config import RunAction

        target = tmp_path / "wt"
        (target / "sub").mkdir(parents=True)
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        provisioner.run_post_create(
            [RunAction(command=["sh", "-c", "pwd -P > ran.txt"], cwd="/sub")],
            tmp_path,
            target,
        )

        assert (target / "sub" / "ran.txt").read_text().strip() == str((target / "sub").resolve())

    def test_install_skips_missing_dir(self, tmp_path):
        from wtx.config import InstallAction

        target = tmp_path / "wt"
        target.mkdir()
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        provisioner.run_post_create(
            [InstallAction(command=["npm", "ci"], name="web deps", cwd="web")], tmp_path, target
        )

        assert "Hook skipped (missing dir): web deps" in _output(provisioner)

    def test_run_missing_dir_is_fatal(self, tmp_path):
        from wtx.config import RunAction
        from wtx.errors import ProvisioningError

        target = tmp_path / "wt"
        target.mkdir()
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        with pytest.raises(ProvisioningError, match="hook directory not found"):
            provisioner.run_post_create(
                [RunAction(command=["make"], cwd="backend")], tmp_path, target
            )

    def test_failing_command_stops_pipeline(self, tmp_path):
        from wtx.config import CopyAction, RunAction
        from wtx.errors import ProvisioningError

        target = tmp_path / "wt"
        target.mkdir()
        (tmp_path / "later.txt").write_text("later")
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        with pytest.raises(ProvisioningError, match=r"hook 'broken' failed \(exit status 3\)"):
            provisioner.run_post_create(
                [
                    RunAction(command=["sh", "-c", "exit 3"], name="broken"),
                    CopyAction(from_="later.txt"),
                ],
                tmp_path,
                target,
            )
        assert not (target / "later.txt").exists()

    def test_unlaunchable_command_is_provisioning_error(self, tmp_path):
        from wtx.config import RunAction
        from wtx.errors import ProvisioningError

        target = tmp_path / "wt"
        target.mkdir()
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        with pytest.raises(ProvisioningError, match="could not start"):
            provisioner.run_post_create(
                [RunAction(command=["wtx-definitely-not-installed"], name="ghost")],
                tmp_path,
                target,
            )

    def test_empty_command_is_ignored(self, tmp_path):
        from wtx.config import RunAction

        target = tmp_path / "wt"
        target.mkdir()
        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        provisioner.run_post_create([RunAction(command=[])], tmp_path, target)

        assert "Hook:" not in _output(provisioner)


class TestRunTask:
    def _location(self, tmp_path):
        from wtx.worktree import WorktreeLocation

        path = tmp_path / "wt"
        path.mkdir(exist_ok=True)
        return WorktreeLocation(
            path=path, branch="feature/x", base="develop", upstream="origin/feature/x",
            repo_root=tmp_path,
        )

    def _request(self, assistant="codex"):
        from wtx.provision import WorktreeRequest

        return WorktreeRequest(task="Do the thing", base="develop", assistant=assistant)

    def test_missing_executable_is_a_notice(self, tmp_path):
        from wtx.config import AssistantCommand, LLMConfig

        config = _config(
            llm=LLMConfig(
                commands={
                    "codex": AssistantCommand(
                        executable="wtx-definitely-not-installed",
                        task_run_args_template=["{task}"],
                    )
                }
            )
        )
        provisioner = _provisioner(config, tmp_path, tmp_path)

        provisioner.run_task(self._request(), self._location(tmp_path))

        assert "wtx-definitely-not-installed not found. Skip auto-run." in _output(provisioner)

    def test_missing_command_config(self, tmp_path):
        from wtx.errors import ConfigError

        provisioner = _provisioner(_config(), tmp_path, tmp_path)

        with pytest.raises(ConfigError, match="missing LLM command config for: codex"):
            provisioner.run_task(self._request(), self._location(tmp_path))

    def test_empty_template_fails_even_without_executable(self, tmp_path):
        from wtx.config import AssistantCommand, LLMConfig
        from wtx.errors import ConfigError

        config = _config(
            llm=LLMConfig(
                commands={"codex": AssistantCommand(executable="wtx-definitely-not-installed")}
            )
        )
        provisioner = _provisioner(config, tmp_path, tmp_path)

        with pytest.raises(ConfigError, match="empty taskRunArgsTemplate"):
            provisioner.run_task(self._request(), self._location(tmp_path))

    def test_task_failure_propagates(self, tmp_path):
        from wtx.config import AssistantCommand, LLMConfig
        from wtx.errors import CommandError

        config = _config(
            llm=LLMConfig(
                commands={
                    "sh": AssistantCommand(task_run_args_template=["-c", "exit 5"]),
                }
            )
        )
        provisioner = _provisioner(config, tmp_path, tmp_path)

        with pytest.raises(CommandError, match="exit status 5"):
            provisioner.run_task(self._request("sh"), self._location(tmp_path))

