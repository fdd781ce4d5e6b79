from providers.llm import LLMClient
