# =============================================================================
# Agents Package — LangGraph Query Pipeline
# =============================================================================
# Answers questions from the ingested corpus:
#   - search.py: embeds the question and runs top-k similarity search
#   - analyst.py: grounded prompt construction, generation, source snippets
#   - orchestrator.py: LangGraph graph wiring retrieve → generate, with a
#     no-results short-circuit that skips the LLM entirely
# =============================================================================
