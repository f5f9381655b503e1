import logging

from hyperdrive import HyperBlueprint

logging.basicConfig(level=logging.DEBUG)

hyperdrive, root = HyperBlueprint.enter_apiary('pollsapi')

with hyperdrive:
    questions = hyperdrive.request(root.transition('questions'))

    for question in questions.representors['questions']:
        print(question.attributes['question'])

        for choice in question.representors['choices']:
            print('  {choice} ({votes})'.format(**choice.attributes))

    choice = questions.representors['questions'][0].representors['choices'][0]
    result = hyperdrive.request(choice.transition('vote'))
    print('Voted: {votes}'.format(**result.attributes))
