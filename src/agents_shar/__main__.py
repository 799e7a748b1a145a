"""Allow `python -m agents_shar`."""

from agents_shar.main import run

if __name__ == "__main__":
    run()
