"""
Resonance - Entry Point
이 파일은 단순 래퍼이며, 실제 로직은 resonance/cli/main.py에 있습니다.
"""
from resonance.cli.main import app


if __name__ == "__main__":
    app()
