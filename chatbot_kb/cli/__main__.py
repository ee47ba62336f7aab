"""Allow ``python -m chatbot_kb.cli`` execution."""

from chatbot_kb.cli.ingest import main

main()
