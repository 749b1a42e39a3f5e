from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

DEFAULT_EXPORT_SCRIPT = "symbol_catalog_json.py"
CATALOG_ENV_VAR = "BINDINGS_CATALOG_JSON"


class GhidraRunnerError(RuntimeError):
    """Raised when headless Ghidra execution fails."""


class GhidraRunner:
    """Thin wrapper around Ghidra's analyzeHeadless utility."""

    def __init__(
        self,
        ghidra_install: Optional[Path] = None,
        script_name: str = DEFAULT_EXPORT_SCRIPT,
    ) -> None:
        self.ghidra_install = self._resolve_install(ghidra_install)
        self.analyze_headless = self._resolve_analyze_headless(self.ghidra_install)
        self.script_dir = Path(__file__).parent / "scripts"
        self.script_name = script_name

    def _resolve_install(self, override: Optional[Path]) -> Path:
        if override:
            install = Path(override).expanduser()
            if not install.exists():
                raise FileNotFoundError(f"Ghidra install not found: {install}")
            return install

        env_path = os.getenv("GHIDRA_INSTALL_DIR")
        if env_path:
            install = Path(env_path)
            if install.exists():
                return install

        candidates = [
            Path("C:/Program Files/Ghidra"),
            Path("C:/Program Files (x86)/Ghidra"),
            Path("/opt/ghidra"),
            Path("/usr/share/ghidra"),
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate

        raise FileNotFoundError(
            "Unable to locate Ghidra installation. "
            "Set GHIDRA_INSTALL_DIR or pass --ghidra explicitly."
        )

    def _resolve_analyze_headless(self, install: Path) -> Path:
        if os.name == "nt":
            script = install / "support" / "analyzeHeadless.bat"
        else:
            script = install / "support" / "analyzeHeadless"

        if not script.exists():
            raise FileNotFoundError(f"analyzeHeadless not found at {script}")
        return script

    def build_command(self, project_dir: Path, project_name: str, binary_path: Path) -> List[str]:
        return [
            str(self.analyze_headless.resolve()),
            str(project_dir.resolve()),
            project_name,
            "-import",
            str(binary_path.resolve()),
            "-overwrite",
            "-scriptPath",
            str(self.script_dir.resolve()),
            "-postScript",
            self.script_name,
        ]

    def export_catalog(
        self,
        binary_path: Path,
        output_dir: Path,
        *,
        project_name: str = "bindings_project",
        log_callback: Optional[Callable[[str], None]] = None,
        env_overrides: Optional[Dict[str, str]] = None,
    ) -> Path:
        """
        Import `binary_path` into a throwaway project and run the export script.

        Returns the path to the catalog JSON written under ``output_dir/raw``.
        """
        binary_path = Path(binary_path).expanduser()
        if not binary_path.exists():
            raise FileNotFoundError(f"Binary not found: {binary_path}")

        script_file = self.script_dir / self.script_name
        if not script_file.exists():
            raise FileNotFoundError(f"Ghidra script missing: {script_file}")

        output_dir = Path(output_dir).expanduser()
        raw_dir = output_dir / "raw"
        project_dir = raw_dir / "ghidra_project"
        project_dir.mkdir(parents=True, exist_ok=True)

        catalog_json = raw_dir / "catalog.json"
        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)
        env[CATALOG_ENV_VAR] = str(catalog_json.resolve())

        cmd = self.build_command(project_dir, project_name, binary_path)
        if os.name == "nt":
            # analyzeHeadless.bat drops quoting unless invoked through `call`.
            cmd = ["cmd.exe", "/c", subprocess.list2cmdline(["call"] + cmd)]

        log_file = raw_dir / f"ghidra_{Path(self.script_name).stem}.log"
        with open(log_file, "w", encoding="utf-8") as log_handle:
            log_handle.write(f"Command parts: {cmd}\n")
            log_handle.flush()
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
                text=True,
            )
            for line in process.stdout:  # type: ignore[attr-defined]
                log_handle.write(line)
                if log_callback:
                    log_callback(line.rstrip())
            ret = process.wait()

        if ret != 0:
            raise GhidraRunnerError(
                f"Ghidra analyzeHeadless failed for {self.script_name} (exit {ret}). "
                f"See {log_file} for details."
            )

        if not catalog_json.exists():
            raise GhidraRunnerError(f"{self.script_name} did not produce catalog JSON")

        return catalog_json
