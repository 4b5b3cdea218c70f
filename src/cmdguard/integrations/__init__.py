"""Framework integrations for cmdguard.

Import the adapter module for your framework directly; each one needs its
optional extra installed:

- ``cmdguard.integrations.langchain`` (``pip install cmdguard[langchain]``)
- ``cmdguard.integrations.pydantic_ai`` (``pip install cmdguard[pydantic-ai]``)
"""
