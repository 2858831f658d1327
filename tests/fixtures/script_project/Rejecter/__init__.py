import azure.durable_functions as df
import azure.functions as func


async def main(msg: func.QueueMessage, starter: str):
    client = df.DurableOrchestrationClient(starter)
    instance_id = msg.get_body().decode("utf-8")
    await client.raise_event(instance_id, "Rejection", None)
