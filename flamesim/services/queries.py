"""GraphQL documents sent to the remote service."""

GENERATE_INFLAMMATORY_TEXT = """
mutation GenerateInflammatoryText($input: GenerateInput!) {
  generateInflammatoryText(input: $input) {
    inflammatoryText
    explanation
  }
}
"""

GENERATE_REPLIES = """
mutation GenerateReplies($text: String!) {
  generateReplies(text: $text) {
    id
    type
    content
  }
}
"""

GENERATE_IMAGE = """
mutation GenerateImage($input: GenerateImageInput!) {
  generateImage(input: $input) {
    imageUrl
    prompt
    generatedAt
  }
}
"""

POST_TO_TWITTER = """
mutation PostToTwitter($input: PostToTwitterInput!) {
  postToTwitter(input: $input) {
    success
    tweetId
    tweetUrl
    errorMessage
  }
}
"""
