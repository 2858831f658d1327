import azure.durable_functions as df


def orchestrator_function(context: df.DurableOrchestrationContext):
    cities = context.get_input()
    result = yield context.call_activity("ActB", cities)
    return result


main = df.Orchestrator.create(orchestrator_function)
