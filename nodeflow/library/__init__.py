from nodeflow.library.langchain import chat_model_executor

__all__ = ["chat_model_executor"]
