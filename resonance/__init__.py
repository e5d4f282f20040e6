"""
Resonance - e-book podcast series generator
책 한 권으로 시리즈 아웃라인과 에피소드 스크립트를 생성합니다.
"""

__version__ = "1.0.0"
