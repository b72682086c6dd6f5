import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from safe_code_runner import ErrorKind, evaluate_test_cases, execute_code

pytestmark = pytest.mark.integration

needs_gpp = pytest.mark.skipif(shutil.which("g++") is None, reason="g++ not installed")
needs_gcc = pytest.mark.skipif(shutil.which("gcc") is None, reason="gcc not installed")
needs_java = pytest.mark.skipif(
    shutil.which("javac") is None or shutil.which("java") is None,
    reason="JDK not installed",
)

CPP_ECHO = """
#include <iostream>
#include <string>
int main() {
    std::string line;
    std::getline(std::cin, line);
    std::cout << line << std::endl;
    return 0;
}
"""

C_ECHO = """
#include <stdio.h>
int main(void) {
    char buf[256];
    if (fgets(buf, sizeof buf, stdin)) fputs(buf, stdout);
    return 0;
}
"""

JAVA_ECHO = """
import java.util.Scanner;
public class Echo {
    public static void main(String[] args) {
        Scanner in = new Scanner(System.in);
        System.out.println(in.nextLine());
    }
}
"""


def _leftover_runs(root: Path) -> list[Path]:
    return sorted(root.glob("run-*")) if root.exists() else []


@needs_gpp
def test_cpp_echo(policy) -> None:
    result = execute_code(CPP_ECHO, "c++", stdin="hello cpp", policy=policy)
    assert result.success is True
    assert result.error_kind is ErrorKind.NONE
    assert result.output == "hello cpp"


@needs_gcc
def test_c_echo(policy) -> None:
    result = execute_code(C_ECHO, "c", stdin="hello c\n", policy=policy)
    assert result.success is True
    assert result.output == "hello c"


@needs_gcc
def test_c_is_compiled_as_c(policy) -> None:
    # Valid C, rejected by a C++ compiler (implicit void* conversion, `new` as a name).
    code = """
#include <stdio.h>
#include <stdlib.h>
int main(void) {
    int *new = malloc(sizeof(int));
    *new = 41;
    printf("%d\\n", *new + 1);
    free(new);
    return 0;
}
"""
    result = execute_code(code, "c", policy=policy)
    assert result.success is True
    assert result.output == "42"


@needs_gcc
def test_c_links_libm(policy) -> None:
    code = '#include <math.h>\n#include <stdio.h>\nint main(void){ double x; scanf("%lf", &x); printf("%.0f\\n", sqrt(x)); return 0; }\n'
    result = execute_code(code, "c", stdin="81", policy=policy)
    assert result.output == "9"


@needs_gpp
def test_cpp_compile_error_never_executes(policy, workspace_root) -> None:
    code = '#include <cstdio>\nint main() { std::FILE* f = std::fopen("ran.txt", "w"); return 0 }\n'
    result = execute_code(code, "cpp", policy=policy)

    assert result.success is False
    assert result.error_kind is ErrorKind.COMPILATION
    assert "error" in result.error
    assert result.output == ""
    assert not list(workspace_root.rglob("ran.txt"))
    assert _leftover_runs(workspace_root) == []


@needs_gpp
def test_cpp_runtime_error(policy) -> None:
    code = '#include <cstdio>\nint main() { std::fprintf(stderr, "bad input\\n"); return 3; }\n'
    result = execute_code(code, "cpp", policy=policy)
    assert result.error_kind is ErrorKind.RUNTIME
    assert result.error == "bad input"


@needs_gpp
def test_cpp_infinite_loop_times_out(policy, workspace_root) -> None:
    code = "int main() { volatile unsigned long i = 0; while (true) { ++i; } }\n"
    started = time.monotonic()
    result = execute_code(code, "cpp", time_limit_ms=1000, policy=policy)
    elapsed = time.monotonic() - started

    assert result.error_kind is ErrorKind.TIMEOUT
    assert result.error == "Execution timeout (1 seconds)"
    # Compile time is included in the wall clock, so leave room for g++.
    assert elapsed < 1 + policy.compile_timeout_seconds
    assert _leftover_runs(workspace_root) == []


@needs_gpp
def test_concurrent_cpp_runs_keep_their_own_binaries(policy) -> None:
    template = '#include <cstdio>\nint main() {{ std::puts("{tag}"); return 0; }}\n'

    def _run(tag: str):
        return execute_code(template.format(tag=tag), "cpp", policy=policy)

    with ThreadPoolExecutor(max_workers=3) as pool:
        results = list(pool.map(_run, ["one", "two", "three"]))

    assert [r.output for r in results] == ["one", "two", "three"]


@needs_java
def test_java_echo(policy) -> None:
    result = execute_code(JAVA_ECHO, "java", stdin="hello java", time_limit_ms=10000, policy=policy)
    assert result.success is True
    assert result.output == "hello java"


@needs_java
def test_java_bare_snippet_is_repaired(policy) -> None:
    snippet = """
public static void Main(String[] args) {
    Scanner in = new Scanner(System.in);
    int n = in.nextInt();
    System.out.println(n * 2);
}
"""
    result = execute_code(snippet, "java", stdin="21", time_limit_ms=10000, policy=policy)
    assert result.success is True
    assert result.output == "42"


@needs_java
def test_java_compile_error(policy, workspace_root) -> None:
    code = "public class Broken { public static void main(String[] a) { int x = ; } }"
    result = execute_code(code, "java", time_limit_ms=10000, policy=policy)
    assert result.error_kind is ErrorKind.COMPILATION
    assert "Broken.java" in result.error
    assert _leftover_runs(workspace_root) == []


@needs_java
def test_concurrent_java_runs_with_same_class_name(policy) -> None:
    template = 'public class Main {{ public static void main(String[] a) {{ System.out.println("{tag}"); }} }}'

    def _run(tag: str):
        return execute_code(template.format(tag=tag), "java", time_limit_ms=10000, policy=policy)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(_run, ["left", "right"]))

    assert [r.output for r in results] == ["left", "right"]


@needs_gpp
def test_cpp_evaluation_with_partial_credit(policy) -> None:
    code = "#include <iostream>\nint main(){ long a, b; std::cin >> a >> b; std::cout << a + b; }\n"
    summary = evaluate_test_cases(
        code,
        "cpp",
        [
            {"input": "1 2", "output": "3"},
            {"input": "10 20", "output": "30"},
            {"input": "2 2", "output": "5"},
        ],
        policy=policy,
    )
    assert summary.total_score == 2
    assert summary.total_tests == 3
    assert summary.percentage == 67
