# Text-generation providers used for caption rewriting
