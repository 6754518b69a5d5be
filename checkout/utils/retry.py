# checkout/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import redis


def redis_retry():
    #jedna powtorka na poziomie transportu, potem wywolujacy traktuje to jako miss
    return retry(
        reraise=True,
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.2),
        retry=retry_if_exception_type(redis.ConnectionError),
    )
