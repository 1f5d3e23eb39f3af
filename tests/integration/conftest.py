import asyncio
import shutil
import socket
import subprocess
import uuid

import aiomysql
import pytest

MYSQL_IMAGE = "mysql:8.0"
ROOT_PASSWORD = "secret"


def pytest_collection_modifyitems(items):
    """Mark collected tests in this directory as integration tests."""
    for item in items:
        if "tests/integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def _get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("", 0))
        return sock.getsockname()[1]


async def _wait_for_mysql(port: int) -> None:
    for _ in range(60):
        try:
            conn = await aiomysql.connect(
                host="127.0.0.1",
                port=port,
                user="root",
                password=ROOT_PASSWORD,
                autocommit=True,
            )
            conn.close()
            return
        except Exception:
            await asyncio.sleep(1)
    raise RuntimeError("Timed out waiting for MySQL to be ready.")


@pytest.fixture(scope="module")
def mysql_port():
    """Run a throwaway MySQL container for the module and yield its host port."""
    if not shutil.which("docker"):
        pytest.skip("docker not available")

    container_name = f"tablesync-mysql-{uuid.uuid4().hex[:8]}"
    port = _get_free_port()
    subprocess.run(
        [
            "docker",
            "run",
            "-d",
            "--rm",
            "--name",
            container_name,
            "-e",
            f"MYSQL_ROOT_PASSWORD={ROOT_PASSWORD}",
            "-p",
            f"{port}:3306",
            MYSQL_IMAGE,
        ],
        check=True,
    )
    try:
        asyncio.run(_wait_for_mysql(port))
        yield port
    finally:
        subprocess.run(["docker", "rm", "-f", container_name], check=False)
