from .logger import TsLogger

__all__ = ["TsLogger"]
