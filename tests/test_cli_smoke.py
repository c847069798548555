from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    repo_root = Path(__file__).resolve().parents[1]

    env = dict(os.environ)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = (
        f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
    )

    return subprocess.run(
        [sys.executable, "-m", "social_digest", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
    )


class TestCLISmoke(unittest.TestCase):
    def test_users_offline(self) -> None:
        proc = _run_cli("--offline", "users")

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(len(payload["topUsers"]), 5)

    def test_posts_offline_with_log(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "events.jsonl"
            proc = _run_cli("--offline", "--log", str(log_path), "posts", "--type", "latest")

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            payload = json.loads(proc.stdout)
            self.assertEqual(payload["type"], "latest")
            self.assertEqual([p["id"] for p in payload["posts"]], [246, 240, 233, 215, 201])

            events = [
                json.loads(ln)["event"]
                for ln in log_path.read_text(encoding="utf-8").splitlines()
                if ln.strip()
            ]
            self.assertIn("config_loaded", events)
            self.assertIn("query_started", events)

    def test_invalid_type_is_a_client_error(self) -> None:
        proc = _run_cli("--offline", "posts", "--type", "trending")

        self.assertEqual(proc.returncode, 2)
        self.assertIn("popular", proc.stderr)

    def test_missing_config_exits_2(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            proc = _run_cli("--config", str(Path(td) / "missing.yaml"), "health")
        self.assertEqual(proc.returncode, 2)

    def test_health(self) -> None:
        proc = _run_cli("health")

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        self.assertEqual(json.loads(proc.stdout)["status"], "UP")


if __name__ == "__main__":
    unittest.main()
