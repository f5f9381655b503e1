from .representor import Transition


def uri_template_for_action(resource, action):
    """
    Returns the URI template of ``action``; an action without (or with an empty) template uses the template of its
    resource.
    """
    if action is not None and action.has_uri_template:
        return action.uri_template
    return resource.uri_template


def transition_from(resource, action, uri=None):
    """
    Builds the :class:`Transition` for an action of a resource.

    Parameters declared on the resource come first and are overridden by parameters of the same name declared on the
    action. Request attributes come from the action's data structure.

    :param Resource resource:
    :param Action action:
    :param str uri: absolute URI of the transition; defaults to the relative URI template of the action
    """
    if uri is None:
        uri = uri_template_for_action(resource, action)

    def build(builder):
        builder.method = action.method
        builder.suggested_content_types = list(action.content_types)

        for parameter in resource.parameters + action.parameters:
            builder.add_parameter(parameter.name,
                                  value=parameter.example,
                                  default_value=parameter.default,
                                  required=parameter.required)

        for name, (value, required) in action.attributes.items():
            builder.add_attribute(name, value=value, required=required)

    return Transition.build(uri, build)
