from guardrails.patterns import PROHIBITED_PATTERNS, find_prohibited
from guardrails.policy import PolicyGuardrail
