"""
Gemini 客户端：google-genai generate_content 的薄封装

对调用方是一个挂起点：await generate() 直到服务端返回；
调用方取消（请求断开）时，协程在这里被取消。
"""
from google import genai

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiTextOptimizer:
    """prompt → 文本。"""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL) -> None:
        if not api_key:
            raise ValueError("Gemini API key is empty. Please provide an API key.")
        self.model = model or DEFAULT_MODEL
        self.client = genai.Client(api_key=api_key)

    async def generate(self, prompt: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )
        return (response.text or "").strip()


def create_gemini_optimizer(api_key: str, model: str = DEFAULT_MODEL) -> GeminiTextOptimizer:
    return GeminiTextOptimizer(api_key, model=model)
