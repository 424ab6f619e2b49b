from .manager import Manager

manager = Manager()
