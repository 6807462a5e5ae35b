"""Core prompt-compilation engine.

The compile pipeline runs these stages, each in its own module:

1. **Seed** (seed.py): resolve or generate the reproducibility seed.
2. **Resolver** (resolver.py): substitute input fields into block templates.
3. **Filters** (filters.py): append filter effects, resolving conflicts.
4. **Profile adapter** (profile_adapter.py, platforms.py): reorder, enforce
   length, flag forbidden patterns, and choose inline LoRA syntax or a
   Character Pack.
5. **Gems** (gems.py): wrap the prompt with optional enhancement packs.
6. **Scorer** (scorer.py): score the prompt and collect warnings.

compiler.py sequences the stages; catalog.py provides an in-memory record
store implementing the compiler's lookup interface.
"""

from promptworks.core.catalog import RecordCatalog, load_catalog
from promptworks.core.compiler import Lookups, PromptCompiler, compile_prompt
from promptworks.core.config import PromptworksConfig, config

__all__ = [
    "Lookups",
    "PromptCompiler",
    "PromptworksConfig",
    "RecordCatalog",
    "compile_prompt",
    "config",
    "load_catalog",
]
