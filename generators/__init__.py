from generators.plan_generator import PlanGenerator
from generators.script_generator import ScriptGenerator
