"""LLM CLI client service.

호스팅 백엔드의 InvokeLLM 통합을 대신하는 LLM 호출 계층입니다.
설정된 CLI 명령(기본: `claude -p <prompt> --output-format text`)을
ThreadPoolExecutor에서 실행하여 비동기로 래핑합니다.

주요 기능:
- complete(): 텍스트 응답
- complete_json(): JSON 응답 (코드 블록/앞뒤 텍스트 허용 파싱)
- invoke(): InvokeLLM 호환 (response_json_schema가 있으면 dict 반환)

재시도 전략:
- 최대 llm_max_retries회 (기본 3)
- 지수 백오프: llm_retry_delay * 2^attempt (2초, 4초, ...)
"""

import json
import subprocess
import os
import sys
import asyncio
import logging
from typing import Any, Optional
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor

from proposaliq.config import get_settings
from proposaliq.exceptions import LLMClientError

logger = logging.getLogger(__name__)


SYSTEM_PREAMBLE = "You are an expert assistant for government contract proposal teams."


class LLMClient:
    """
    LLM CLI 래퍼 클래스.

    Attributes:
        _command: 실행할 CLI 명령
        _max_retries: 최대 시도 횟수
        _retry_delay: 초기 재시도 대기 시간(초)
        _executor: CLI 실행용 ThreadPoolExecutor
    """

    def __init__(self):
        settings = get_settings()
        self._command = settings.llm_command
        self._timeout = settings.llm_timeout_seconds
        self._max_retries = settings.llm_max_retries
        self._retry_delay = settings.llm_retry_delay

        # CPU 코어 수 기반 workers (최소 2, 최대 8)
        cpu_count = os.cpu_count() or 4
        max_workers = min(8, max(2, cpu_count))
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

        logger.info(f"[LLM] CLI 모드 초기화 완료 (command={self._command}, workers={max_workers})")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        provider: Optional[str] = None,
    ) -> str:
        """
        텍스트 응답을 요청합니다.

        temperature/provider는 CLI 모드에서 전달되지 않고 로그에만 남습니다.
        """
        logger.info(f"[LLM] complete 요청 (provider={provider or 'default'}, temperature={temperature})")
        full_prompt = f"""{SYSTEM_PREAMBLE}

Follow these instructions:
{system_prompt}

---

{user_prompt}"""
        return await self._execute_cli(full_prompt)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        provider: Optional[str] = None,
    ) -> Any:
        """JSON 응답을 요청하고 파싱된 값을 반환합니다."""
        logger.info(f"[LLM] complete_json 요청 (provider={provider or 'default'})")
        full_prompt = f"""{SYSTEM_PREAMBLE}

Follow these instructions:
{system_prompt}

---

{user_prompt}

---

Response format: output valid JSON only. No explanations and no markdown code fences."""
        response = await self._execute_cli(full_prompt)
        return self._parse_json_response(response)

    async def invoke(
        self,
        prompt: str,
        response_json_schema: Optional[dict] = None,
        add_context_from_internet: bool = False,
    ) -> Any:
        """
        InvokeLLM 호환 호출.

        Args:
            prompt: 전체 프롬프트
            response_json_schema: 있으면 스키마를 프롬프트에 덧붙이고 파싱된 dict 반환
            add_context_from_internet: 호환용 인자 (CLI 모드에서는 무시)

        Returns:
            스키마가 없으면 문자열, 있으면 파싱된 JSON
        """
        if response_json_schema is None:
            return await self._execute_cli(prompt)

        full_prompt = f"""{prompt}

---

Respond with a single JSON value that conforms to this JSON Schema:
{json.dumps(response_json_schema, indent=2)}

Output valid JSON only. No explanations and no markdown code fences."""
        response = await self._execute_cli(full_prompt)
        return self._parse_json_response(response)

    def _get_env(self) -> dict:
        """CLI 실행용 PATH 보강 환경 변수."""
        env = os.environ.copy()

        if sys.platform == "win32":
            extra_paths = [os.path.expanduser("~\\AppData\\Roaming\\npm")]
            path_separator = ";"
        else:
            extra_paths = [
                os.path.expanduser("~/.npm-global/bin"),
                "/usr/local/bin",
                "/opt/homebrew/bin",
            ]
            path_separator = ":"

        env["PATH"] = path_separator.join(extra_paths) + path_separator + env.get("PATH", "")
        return env

    def _run_cli_sync(self, prompt: str) -> str:
        """CLI를 동기 실행합니다."""
        logger.info(f"[LLM] 프롬프트 길이: {len(prompt)} chars")
        start_time = datetime.now()

        try:
            result = subprocess.run(
                [self._command, "-p", prompt, "--output-format", "text"],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=self._get_env(),
                shell=sys.platform == "win32",
                encoding="utf-8",
            )
        except subprocess.TimeoutExpired:
            elapsed = (datetime.now() - start_time).total_seconds()
            logger.error(f"[LLM] 타임아웃! {elapsed:.1f}초")
            raise

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"[LLM] 완료: {elapsed:.1f}초, returncode={result.returncode}")

        if result.returncode != 0:
            error_msg = result.stderr or "Unknown error"
            logger.error(f"[LLM] 에러: {error_msg}")
            raise RuntimeError(f"LLM CLI error: {error_msg}")

        logger.info(f"[LLM] 응답 길이: {len(result.stdout)} chars")
        return result.stdout.strip()

    async def _execute_cli(self, prompt: str) -> str:
        """
        재시도 + 지수 백오프로 CLI를 실행합니다.

        Raises:
            LLMClientError: 모든 시도가 실패한 경우
        """
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                logger.info(f"[LLM] 시도 {attempt + 1}/{self._max_retries}")
                loop = asyncio.get_running_loop()
                return await loop.run_in_executor(self._executor, self._run_cli_sync, prompt)

            except (OSError, RuntimeError, subprocess.SubprocessError) as e:
                last_error = e
                logger.error(f"[LLM] 시도 {attempt + 1} 실패: {type(e).__name__}: {e}")

                if attempt < self._max_retries - 1:
                    wait_time = self._retry_delay * (2 ** attempt)
                    logger.info(f"[LLM] {wait_time}초 후 재시도...")
                    await asyncio.sleep(wait_time)

        logger.error(f"[LLM] 모든 시도 실패: {last_error}")
        raise LLMClientError(
            f"LLM invocation failed after {self._max_retries} attempts",
            details={"error": str(last_error)},
        )

    def _parse_json_response(self, response: str) -> Any:
        """
        LLM 응답에서 JSON을 추출합니다.

        1. 마크다운 코드 블록 제거 후 직접 파싱
        2. 실패하면 첫 { 또는 [ 부터 괄호 깊이를 추적해 추출 파싱
        3. 그래도 실패하면 LLMClientError
        """
        cleaned = response.strip()
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:]
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()

        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(f"[JSON] 직접 파싱 실패: {e}")
            first_error = e

        starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
        if starts:
            start_idx = min(starts)
            bracket = cleaned[start_idx]
            closing = "}" if bracket == "{" else "]"

            depth = 0
            end_idx = len(cleaned)
            for i, char in enumerate(cleaned[start_idx:], start_idx):
                if char == bracket:
                    depth += 1
                elif char == closing:
                    depth -= 1
                    if depth == 0:
                        end_idx = i + 1
                        break

            try:
                return json.loads(cleaned[start_idx:end_idx])
            except json.JSONDecodeError as e2:
                logger.error(f"[JSON] 추출 파싱 실패: {e2}")

        raise LLMClientError(
            "Failed to parse JSON from LLM response",
            details={"error": str(first_error), "response_preview": response[:200]},
        )


# Singleton instance for dependency injection
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """LLMClient 싱글톤을 반환합니다."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
