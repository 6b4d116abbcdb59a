"""
MMSTR: mediated message interpretation service.

Participants may only respond to a message after restating it in their own
words; an LLM judge grades each restatement, the author may overrule it, and
disputes or exhausted attempts end in a binding arbitration.

Packages
--------
- validation : text length and lexical-overlap rules
- protocol   : state machine, statuses and judge output types
- database   : settings, engine, entities, DAOs and the service/flow layer
- api        : FastAPI router, request models and the LLM judge adapter
"""
