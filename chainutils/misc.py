from typing import Callable, Optional

from threading import Event
from time import time, sleep

class InitException(Exception):
    pass

def backoff_delay(base_delay: float, attempt: int, max_delay: float = 60) -> float:
    return min(base_delay * (2 ** attempt), max_delay)

# Based on
# - https://stackoverflow.com/questions/474528/what-is-the-best-way-to-repeatedly-execute-a-function-every-x-seconds/49801719#49801719
def every(task: Callable, delay: int, stop: Optional[Event] = None) -> None:
    first_time = True
    next_time = time() + delay
    while not (stop and stop.is_set()):
        if not first_time:
            timeout = max(0, next_time - time())
            if stop:
                if stop.wait(timeout):
                    break
            else:
                sleep(timeout)
        else:
            first_time = False
        task()
        next_time += (time() - next_time) // delay * delay + delay
