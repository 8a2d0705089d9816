from llm_chat.app.main import run

run()
