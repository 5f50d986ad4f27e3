"""
AI analysis and solution drafting for problems.

The completion provider is treated as unreliable: every failure,
including replies that are not valid JSON, surfaces as a
DependencyError instead of an unhandled exception.
"""

import json
import logging
import re
from typing import Any, Optional

from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI
from langfuse import Langfuse
from pydantic import ValidationError as PydanticValidationError

from common.config import Settings
from common.models import Problem
from common.schemas import AISolutionDraft

from .errors import DependencyError

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = PromptTemplate(
    input_variables=[
        "title",
        "description",
        "address",
        "category",
        "tags",
        "participants",
        "frequency",
        "status",
    ],
    template="""
당신은 지역사회 문제 해결 전문가입니다. 다음 지역사회 문제를 심층적으로 분석해 주세요:

문제 제목: {title}
문제 설명: {description}
위치: {address}
카테고리: {category}
태그: {tags}
참여자 수: {participants}명
유사 문제 빈도: {frequency}건
현재 상태: {status}

다음 항목별로 구체적이고 실용적인 분석을 제공해 주세요:
1. 문제 유형 분류
2. 심각성 평가 (긴급도, 영향 범위, 지속 기간)
3. 핵심 원인 분석 (직접적, 간접적, 구조적 원인)
4. 필요 자원 (인적, 물적, 재정적, 제도적 자원)
5. 해결 접근법 (단기, 중기, 장기)
6. 잠재적 파트너 (공공기관, 민간기업, 비영리단체, 지역사회 그룹)
7. 예상 장애물과 극복 방안
8. 성공 지표와 측정 방법
9. 종합 평가 및 권장사항
"""
)

SOLUTION_PROMPT = PromptTemplate(
    input_variables=["title", "description", "category", "address"],
    template="""
당신은 지역사회 문제 해결에 도움을 주는 AI 전문가입니다.
다음 지역사회 문제에 대한 실용적인 해결책을 제안해주세요.

문제 제목: {title}
문제 설명: {description}
카테고리: {category}
위치: {address}

다음 키를 가진 JSON 객체 하나로만 응답해주세요:
- "title": 간결하고 명확한 해결책 제목
- "description": 상세한 해결책 설명 (500-800자 정도)
- "budget": 대략적인 금액 (숫자, 예: 300000)
- "timeline": 실행에 필요한 시간 (예: "3개월")
- "resources": 필요 자원 3-5개의 배열 (예: ["인적 자원", "장비", "공간"])
"""
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def get_llm_client(
    settings: Settings,
    temperature: Optional[float] = None
) -> ChatOpenAI:
    """Create and configure LLM client."""
    if temperature is None:
        temperature = settings.llm_temperature
    return ChatOpenAI(
        model=settings.llm_model_name,
        base_url=settings.openrouter_base_url,
        api_key=settings.openrouter_api_key,
        temperature=temperature,
        timeout=settings.llm_timeout_seconds,
        max_retries=2
    )


def get_langfuse_client(settings: Settings) -> Optional[Langfuse]:
    """Create Langfuse client, or None when tracing is not configured."""
    if not settings.langfuse_enabled:
        return None
    return Langfuse(
        secret_key=settings.langfuse_secret_key,
        public_key=settings.langfuse_public_key,
        host=settings.langfuse_base_url
    )


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Extract a JSON object from a model reply.

    Tolerates markdown code fences and prose around the object.

    Raises:
        ValueError: If no JSON object can be decoded
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object in reply")

    data = json.loads(cleaned[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Reply is not a JSON object")
    return data


class AIService:
    """
    Wraps the completion provider for problem analysis and solution
    drafting.

    Args:
        llm: LangChain chat model (anything with invoke())
        langfuse: Optional Langfuse client for tracing generations
        model_name: Model name recorded on traces
        solution_llm: Chat model for solution drafting; defaults to llm
    """

    def __init__(
        self,
        llm: Any,
        langfuse: Optional[Langfuse] = None,
        model_name: str = "",
        solution_llm: Any = None
    ):
        self.llm = llm
        self.solution_llm = solution_llm if solution_llm is not None else llm
        self.langfuse = langfuse
        self.model_name = model_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIService":
        return cls(
            llm=get_llm_client(settings),
            langfuse=get_langfuse_client(settings),
            model_name=settings.llm_model_name,
            solution_llm=get_llm_client(
                settings,
                temperature=settings.solution_temperature
            )
        )

    def _complete(self, name: str, prompt: str, llm: Any) -> str:
        try:
            if self.langfuse is None:
                return self._invoke(llm, prompt)

            with self.langfuse.start_as_current_generation(
                name=name,
                model=self.model_name,
                input=prompt
            ) as generation:
                result = self._invoke(llm, prompt)
                generation.update(output=result)
                return result
        except Exception as e:
            logger.error(f"{name} completion failed: {e}")
            if "timeout" in str(e).lower() or "timed out" in str(e).lower():
                raise DependencyError(
                    "AI service timed out. Please try again."
                ) from e
            raise DependencyError("AI service request failed") from e

    def _invoke(self, llm: Any, prompt: str) -> str:
        response = llm.invoke(prompt)
        return str(response.content).strip()

    def analyze_problem(self, problem: Problem) -> str:
        """
        Produce an in-depth analysis of a problem.

        Args:
            problem: Problem to analyze

        Returns:
            str: Analysis text

        Raises:
            DependencyError: If the completion fails or is empty
        """
        prompt = ANALYSIS_PROMPT.format(
            title=problem.title,
            description=problem.description,
            address=problem.address,
            category=problem.category,
            tags=", ".join(problem.tags or []),
            participants=len(problem.participants or []),
            frequency=problem.frequency,
            status=problem.status
        )
        analysis = self._complete("problem_analysis", prompt, self.llm)
        if not analysis:
            raise DependencyError("AI service returned an empty analysis")

        logger.info(f"Generated analysis for problem {problem.problem_id}")
        return analysis

    def generate_solution(self, problem: Problem) -> AISolutionDraft:
        """
        Draft a solution for a problem.

        Args:
            problem: Problem to solve

        Returns:
            AISolutionDraft: Parsed draft, not persisted

        Raises:
            DependencyError: If the completion fails or cannot be parsed
        """
        prompt = SOLUTION_PROMPT.format(
            title=problem.title,
            description=problem.description,
            category=problem.category,
            address=problem.address
        )
        reply = self._complete(
            "solution_generation",
            prompt,
            self.solution_llm
        )

        try:
            draft = AISolutionDraft.model_validate(parse_json_object(reply))
        except (ValueError, PydanticValidationError) as e:
            logger.warning(
                f"Unparseable AI solution for problem "
                f"{problem.problem_id}: {e}"
            )
            raise DependencyError(
                "AI response could not be processed"
            ) from e

        logger.info(f"Drafted AI solution for problem {problem.problem_id}")
        return draft
