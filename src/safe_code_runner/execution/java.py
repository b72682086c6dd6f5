from __future__ import annotations

import re
from dataclasses import dataclass

from .engine import classify_compilation, classify_execution
from .process import run_process
from .types import RunnerOutcome, Workspace
from .workspace import remove_artifacts

DEFAULT_CLASS_NAME = "Main"

_PUBLIC_CLASS = re.compile(r"public\s+class\s+(\w+)")
_MISCAPITALIZED_MAIN = re.compile(r"public\s+static\s+void\s+Main\s*\(")
_SCANNER_IMPORT = re.compile(r"import\s+java\.util\.(Scanner|\*)\s*;")


@dataclass(frozen=True, slots=True)
class JavaSource:
    """Java source ready to compile, plus the public class it declares.

    Example:
        ```python
        src = JavaSource(class_name="Main", code="public class Main {}")
        ```
    """

    class_name: str
    code: str


def repair_java_source(code: str) -> JavaSource:
    """Patch the most common defects of loosely written student snippets.

    Three repairs are applied: a snippet with no `public class` is wrapped in
    `public class Main`, `public static void Main(` becomes `main(`, and
    `java.util.Scanner` is imported when it is used but not imported.

    Example:
        ```python
        src = repair_java_source("public static void main(String[] a) { }")
        src.class_name  # "Main"
        ```
    """
    match = _PUBLIC_CLASS.search(code)
    if match:
        class_name = match.group(1)
        repaired = code
    else:
        class_name = DEFAULT_CLASS_NAME
        repaired = f"public class {DEFAULT_CLASS_NAME} {{\n{code}\n}}"

    repaired = _MISCAPITALIZED_MAIN.sub("public static void main(", repaired)

    if "Scanner" in repaired and not _SCANNER_IMPORT.search(repaired):
        repaired = "import java.util.Scanner;\n" + repaired
    return JavaSource(class_name=class_name, code=repaired)


def plain_java_source(code: str) -> JavaSource:
    """Use the code as written, only locating its public class.

    Example:
        ```python
        src = plain_java_source("public class Solution { }")
        ```
    """
    match = _PUBLIC_CLASS.search(code)
    return JavaSource(class_name=match.group(1) if match else DEFAULT_CLASS_NAME, code=code)


@dataclass(slots=True)
class JavaRunner:
    """Compile with `javac` and run with `java` inside the run's own directory.

    Java forces the file name to match the public class, so isolation comes
    from the per-run directory rather than from the file name.

    Example:
        ```python
        runner = JavaRunner(javac="javac", java="java")
        ```
    """

    javac: str = "javac"
    java: str = "java"
    repairs: bool = True
    compile_timeout_seconds: int = 30
    max_output_bytes: int = 128 * 1024

    def run(
        self,
        source_code: str,
        stdin: str,
        workspace: Workspace,
        time_limit_ms: int,
    ) -> RunnerOutcome:
        """Compile the submission's public class and execute it.

        Example:
            ```python
            outcome = runner.run(java_code, "5", ws, 2000)
            ```
        """
        source = repair_java_source(source_code) if self.repairs else plain_java_source(source_code)
        source_path = workspace.path / f"{source.class_name}.java"
        source_path.write_text(source.code, encoding="utf-8")

        try:
            compiled = run_process(
                [self.javac, "-encoding", "UTF-8", source_path.name],
                timeout_seconds=self.compile_timeout_seconds,
                cwd=workspace.path,
                max_output_bytes=self.max_output_bytes,
            )
            failed = classify_compilation(compiled, self.compile_timeout_seconds)
            if failed is not None:
                return failed

            executed = run_process(
                [self.java, "-cp", str(workspace.path), source.class_name],
                stdin=stdin,
                timeout_seconds=time_limit_ms / 1000,
                cwd=workspace.path,
                max_output_bytes=self.max_output_bytes,
            )
        finally:
            remove_artifacts(*workspace.path.glob("*.class"))
        return classify_execution(executed, time_limit_ms)
