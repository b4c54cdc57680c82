"""Run ARQ worker. Usage: python -m docscan.worker.run_worker"""

from arq import run_worker

from docscan.worker.tasks import WorkerSettings


def main() -> None:
    run_worker(WorkerSettings)


if __name__ == "__main__":
    main()
