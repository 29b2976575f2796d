from runledger.services import JobDefinition, JobContext

MODULE_KEY = "hello-world"
JOB_KEY = "hello-world:greet"


async def greet(ctx: JobContext, input) -> None:
    name = input.get("name", "World") if isinstance(input, dict) else "World"
    ctx.logger.info("Hello from module")
    ctx.write_artifact("greeting.txt", f"Hello, {name}!")


def init(ledger) -> list[str]:
    ledger.jobs.register(JobDefinition(key=JOB_KEY, run=greet))
    return [JOB_KEY]
