"""Plan ingest: read a JSON plan artifact or produce one by running Terraform."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)


class PlanLoaderError(RuntimeError):
    """Exception raised when terraform plan ingestion fails."""


class PlanLoader:
    """Load Terraform plan data from supplied artifacts or by executing Terraform."""

    def __init__(
        self,
        working_dir: str | os.PathLike[str] = ".",
        *,
        plan_json_path: str | os.PathLike[str] | None = None,
        plan_file_path: str | os.PathLike[str] | None = None,
        var_files: Optional[Iterable[str | os.PathLike[str]]] = None,
        env: Optional[dict[str, str]] = None,
        inherit_environment: bool = False,
        terraform_bin: str = "terraform",
        upgrade: bool = True,
    ) -> None:
        self.working_dir = Path(working_dir).resolve()
        self.plan_json_path = Path(plan_json_path).resolve() if plan_json_path else None
        self.plan_file_path = Path(plan_file_path).resolve() if plan_file_path else None
        self.var_files = [str(Path(path).resolve()) for path in var_files] if var_files else []
        self.env = env or {}
        self.inherit_environment = inherit_environment
        self.terraform_bin = terraform_bin
        self.upgrade = upgrade

    def load_plan(self) -> Any:
        """Load plan data from an artifact or by executing Terraform."""

        if self.plan_json_path:
            return self._load_json_artifact(self.plan_json_path)

        if self.plan_file_path:
            return self._load_plan_file(self.plan_file_path)

        return self._generate_plan_from_source()

    # Artifact ingestion helpers -------------------------------------------------
    def _load_json_artifact(self, path: Path) -> Any:
        if not path.exists():
            raise PlanLoaderError(f"Terraform plan JSON artifact not found: {path}")

        logger.info("Reading plan from %s", path)
        with path.open("r", encoding="utf-8") as handle:
            try:
                return json.load(handle)
            except json.JSONDecodeError as exc:
                raise PlanLoaderError(f"Invalid JSON in plan artifact: {path}") from exc

    def _load_plan_file(self, path: Path) -> Any:
        if not path.exists():
            raise PlanLoaderError(f"Terraform plan file not found: {path}")

        completed = self._run_command(
            [self.terraform_bin, "show", "-json", str(path)],
            cwd=self.working_dir,
            env=self._build_environment(),
            capture_output=True,
        )
        return self._parse_command_output(completed.stdout)

    # Terraform execution --------------------------------------------------------
    def _generate_plan_from_source(self) -> Any:
        env = self._build_environment()

        logger.info("Initializing Terraform...")
        init_cmd = [self.terraform_bin, "init", "-input=false"]
        if self.upgrade:
            init_cmd.append("-upgrade")
        self._run_command(init_cmd, cwd=self.working_dir, env=env)

        with tempfile.TemporaryDirectory(prefix="plan-atlas") as tmpdir:
            plan_path = Path(tmpdir) / f"atlasplan-{int(time.time())}"
            plan_cmd = [self.terraform_bin, "plan", "-input=false", f"-out={plan_path}"]
            for var_file in self.var_files:
                plan_cmd.append(f"-var-file={var_file}")

            logger.info("Generating plan...")
            self._run_command(plan_cmd, cwd=self.working_dir, env=env)

            show_cmd = [self.terraform_bin, "show", "-json", str(plan_path)]
            completed = self._run_command(
                show_cmd, cwd=self.working_dir, env=env, capture_output=True
            )

        return self._parse_command_output(completed.stdout)

    def _build_environment(self) -> dict[str, str]:
        if self.inherit_environment:
            env_vars = os.environ.copy()
        else:
            env_vars = {"PATH": os.environ.get("PATH", "")}

        env_vars.update(self.env)
        return env_vars

    def _parse_command_output(self, output: str) -> Any:
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise PlanLoaderError("Command output was not valid JSON") from exc

    # Command runner -------------------------------------------------------------
    def _run_command(
        self,
        args: List[str],
        *,
        cwd: Path | None = None,
        env: Optional[dict[str, str]] = None,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                env=env,
                check=True,
                capture_output=capture_output,
                text=True,
            )
        except FileNotFoundError as exc:
            raise PlanLoaderError(f"Executable not found: {args[0]}") from exc
        except subprocess.CalledProcessError as exc:
            raise PlanLoaderError(
                f"Command '{' '.join(args)}' failed with exit code {exc.returncode}"
            ) from exc

        return completed


__all__ = ["PlanLoader", "PlanLoaderError"]
